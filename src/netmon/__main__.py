"""Application entry point for netmon.

Exit Codes:
    0: Clean shutdown
    1: Configuration, storage or runtime error
    2: Usage error, or another monitor already holds the data file lock
"""

from __future__ import annotations

from netmon.app.cli import cli

__all__ = ["main"]


def main() -> None:
    """Run the command-line interface."""
    cli(prog_name="netmon")


if __name__ == "__main__":
    main()
