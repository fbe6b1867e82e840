"""Logging infrastructure with syslog integration and session ID tracking.

Every monitoring run gets a session identifier stored in a ContextVar. The
``CorrelationIDFilter`` stamps it on each record, so log lines from probes,
the store and the notifier can be tied back to the run that produced them,
including lines emitted from ``asyncio.to_thread`` workers.
"""

import contextvars
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Final, override

# Session ID context variable, inherited by asyncio tasks and to_thread workers
correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id",
    default=None,
)

DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] - %(message)s"

SYSLOG_LOG_FORMAT: Final[str] = "netmon[%(process)d]: %(levelname)s - [%(correlation_id)s] - %(name)s - %(message)s"

DEFAULT_SYSLOG_ADDRESS: Final[str] = "/dev/log"

LOG_FILE_MAX_BYTES: Final[int] = 5 * 1024 * 1024
LOG_FILE_BACKUP_COUNT: Final[int] = 3


class CorrelationIDFilter(logging.Filter):
    """Logging filter that adds the session ID to log records.

    Records logged outside a monitoring session carry ``"N/A"``.
    """

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        correlation_id = correlation_id_var.get()
        record.correlation_id = correlation_id if correlation_id is not None else "N/A"
        return True


def configure_logging(
    *,
    log_level: str = "INFO",
    enable_syslog: bool = False,
    syslog_address: str = DEFAULT_SYSLOG_ADDRESS,
    enable_console: bool = True,
    log_file: Path | None = None,
) -> None:
    """Configure application logging.

    Sets up:
    - Session ID tracking via ContextVar
    - Optional syslog integration
    - Console output on stderr, keeping stdout for command output
    - Optional rotating log file

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_syslog: Enable syslog handler
        syslog_address: Syslog socket address
        enable_console: Enable console output handler
        log_file: Optional path of a rotating log file

    Example:
        >>> configure_logging(log_level="DEBUG", log_file=Path("/tmp/netmon.log"))
        >>> set_correlation_id("a1b2c3d4")
        >>> logging.getLogger(__name__).info("Tick complete", extra={"loss": 0.0})
    """
    root_logger = logging.getLogger()

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    correlation_filter = CorrelationIDFilter()

    if enable_syslog:
        try:
            syslog_handler = logging.handlers.SysLogHandler(
                address=syslog_address,
                facility=logging.handlers.SysLogHandler.LOG_DAEMON,
            )
            syslog_handler.setFormatter(logging.Formatter(SYSLOG_LOG_FORMAT))
            syslog_handler.addFilter(correlation_filter)
            root_logger.addHandler(syslog_handler)
        except OSError as exc:
            # Syslog not available (containers, macOS without /dev/log)
            print(
                f"Warning: Could not connect to syslog at {syslog_address}: {exc}",
                file=sys.stderr,
            )

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        console_handler.addFilter(correlation_filter)
        root_logger.addHandler(console_handler)

    if log_file is not None:
        path = log_file.expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                path,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError as exc:
            print(f"Warning: Could not open log file {path}: {exc}", file=sys.stderr)
        else:
            file_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
            file_handler.addFilter(correlation_filter)
            root_logger.addHandler(file_handler)


def set_correlation_id(correlation_id: str) -> None:
    """Set the session ID for the current context.

    Args:
        correlation_id: Unique identifier for the monitoring session
    """
    _ = correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    """Get the current session ID, None if not set."""
    return correlation_id_var.get()


def clear_correlation_id() -> None:
    _ = correlation_id_var.set(None)
