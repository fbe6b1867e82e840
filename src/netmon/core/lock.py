"""Advisory PID lock file guarding a data file against concurrent monitors.

The lock is cooperative: it only protects the data documents when every
writer honors it. Acquisition creates the lock file atomically and records
the owner's process id; a lock left behind by a dead process is reclaimed
once.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from types import TracebackType
from typing import Self

import psutil

logger = logging.getLogger(__name__)


class AlreadyRunningError(Exception):
    """Raised when another live process holds the lock.

    Distinct from ``OSError`` so callers can tell "another instance is
    running" apart from storage failures.
    """

    def __init__(self, lock_path: Path, pid: int) -> None:
        super().__init__(f"Another instance is running (pid {pid}, lock file {lock_path})")
        self.lock_path: Path = lock_path
        self.pid: int = pid


def read_lock_pid(lock_path: Path) -> int | None:
    """Read the owner PID from a lock file, None if missing or invalid."""
    try:
        content = lock_path.read_text().strip()
    except FileNotFoundError:
        return None
    except OSError as exc:
        logger.warning(
            "Could not read lock file",
            extra={"path": str(lock_path), "error": str(exc)},
        )
        return None

    if not content.isdigit() or int(content) <= 0:
        logger.warning(
            "Lock file contains an invalid PID",
            extra={"path": str(lock_path), "content": content},
        )
        return None
    return int(content)


def is_process_alive(pid: int) -> bool:
    """Return True if a process with ``pid`` exists."""
    try:
        return psutil.pid_exists(pid)
    except (OSError, ValueError):
        return False


class ProcessLock:
    """PID-file based advisory lock.

    Example:
        >>> with ProcessLock(Path("/tmp/metrics.lock")):
        ...     run_monitor()
    """

    def __init__(self, path: Path, *, pid: int | None = None) -> None:
        """Initialize the lock.

        Args:
            path: Lock file location
            pid: Identifier recorded in the lock (defaults to this process)
        """
        self.path: Path = path
        self.pid: int = pid if pid is not None else os.getpid()
        self._held: bool = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        """Take the lock or fail fast.

        Raises:
            AlreadyRunningError: If a live process owns the lock
            OSError: If the lock file cannot be created for another reason
        """
        if self._held:
            return

        if self._try_create():
            return

        owner = read_lock_pid(self.path)
        if owner is not None and owner != self.pid and is_process_alive(owner):
            raise AlreadyRunningError(self.path, owner)

        logger.warning(
            "Removing stale lock file",
            extra={"path": str(self.path), "stale_pid": owner},
        )
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass

        if not self._try_create():
            # Someone else won the race for the reclaimed lock
            owner = read_lock_pid(self.path)
            raise AlreadyRunningError(self.path, owner if owner is not None else 0)

    def release(self) -> None:
        """Remove the lock file if it is still ours."""
        if not self._held:
            return
        self._held = False

        if read_lock_pid(self.path) != self.pid:
            logger.warning(
                "Lock file no longer owned by this process; leaving it in place",
                extra={"path": str(self.path)},
            )
            return
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.error(
                "Failed to remove lock file",
                extra={"path": str(self.path), "error": str(exc)},
            )

    def _try_create(self) -> bool:
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            _ = handle.write(str(self.pid))
        self._held = True
        logger.debug("Acquired lock", extra={"path": str(self.path), "pid": self.pid})
        return True

    def __enter__(self) -> Self:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.release()
