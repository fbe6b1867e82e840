"""Application module for the network monitor."""

from __future__ import annotations

from netmon.app.cli import cli
from netmon.app.runner import ApplicationRunner

__all__ = [
    "cli",
    "ApplicationRunner",
]
