"""Durable JSON store for samples and outage events.

The store owns the canonical history. Two documents live side by side:

- ``<name>.json``: JSON array of samples
- ``<name>-outages.json``: JSON array of outage events

Every mutation rewrites the affected document in full through a temporary
file and an atomic rename, so the on-disk copy is always parseable JSON.
Each document has its own lock held across the in-memory mutation and the
write; concurrent callers in one process are serialized in call order.
Cross-process exclusion is advisory, through ``ProcessLock``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Final

from pydantic import TypeAdapter, ValidationError

from netmon.core.lock import ProcessLock
from netmon.types.models import LoadReport, OutageEvent, Sample

logger = logging.getLogger(__name__)

DEFAULT_RETENTION: Final[int] = 100_000
OUTAGES_SUFFIX: Final[str] = "-outages"
LOCK_SUFFIX: Final[str] = ".lock"

_SAMPLE_ADAPTER: Final[TypeAdapter[Sample]] = TypeAdapter(Sample)
_OUTAGE_ADAPTER: Final[TypeAdapter[OutageEvent]] = TypeAdapter(OutageEvent)


class StorageSetupError(Exception):
    """Raised when the data directory cannot be prepared at startup."""


def outages_path_for(data_file: Path) -> Path:
    """Return the outage document path that pairs with ``data_file``."""
    return data_file.with_name(f"{data_file.stem}{OUTAGES_SUFFIX}{data_file.suffix}")


def lock_path_for(data_file: Path) -> Path:
    """Return the lock file path that pairs with ``data_file``."""
    return data_file.with_name(f"{data_file.stem}{LOCK_SUFFIX}")


def read_json_array(path: Path) -> list[object]:
    """Read a JSON array document, treating any problem as empty history.

    A missing file is silent; unreadable or malformed content is logged.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as exc:
        logger.warning(
            "Could not read data document; starting with empty history",
            extra={"path": str(path), "error": str(exc)},
        )
        return []

    try:
        parsed: object = json.loads(raw)  # pyright: ignore[reportAny]  # JSON boundary
    except json.JSONDecodeError as exc:
        logger.warning(
            "Data document is not valid JSON; starting with empty history",
            extra={"path": str(path), "error": str(exc)},
        )
        return []

    if not isinstance(parsed, list):
        logger.warning(
            "Data document is not a JSON array; starting with empty history",
            extra={"path": str(path), "found": type(parsed).__name__},
        )
        return []
    return parsed  # pyright: ignore[reportUnknownVariableType]  # JSON boundary


def write_json_atomic(path: Path, payload: object) -> None:
    """Replace ``path`` with ``payload`` serialized as JSON.

    Raises:
        OSError: If the temporary file cannot be written or renamed
    """
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class _Document[T]:
    """One persisted, ordered collection with its own write lock."""

    def __init__(self, path: Path, adapter: TypeAdapter[T], kind: str) -> None:
        self.path: Path = path
        self.adapter: TypeAdapter[T] = adapter
        self.kind: str = kind
        self.items: list[T] = []
        self.lock: threading.RLock = threading.RLock()

    def load(self) -> tuple[int, int]:
        """Load and validate records one by one. Returns (loaded, dropped)."""
        records = read_json_array(self.path)
        loaded: list[T] = []
        dropped = 0
        for record in records:
            try:
                loaded.append(self.adapter.validate_python(record))
            except ValidationError as exc:
                dropped += 1
                logger.debug(
                    "Dropping invalid record",
                    extra={"kind": self.kind, "errors": exc.error_count()},
                )
        with self.lock:
            self.items = loaded
        return len(loaded), dropped

    def persist(self) -> bool:
        """Rewrite the document from memory. Caller must hold ``lock``."""
        payload = [self.adapter.dump_python(item, mode="json") for item in self.items]
        try:
            write_json_atomic(self.path, payload)
        except OSError as exc:
            logger.error(
                "Failed to write data document; keeping in-memory state",
                extra={"path": str(self.path), "kind": self.kind, "error": str(exc)},
            )
            return False
        return True


class MetricStore:
    """Authoritative sample and outage history backed by two JSON documents."""

    def __init__(self, data_file: Path, *, retention: int = DEFAULT_RETENTION) -> None:
        """Initialize the store and make sure the data directory exists.

        Args:
            data_file: Sample document path; the outage document and lock
                file are derived from it
            retention: Maximum number of samples kept (oldest evicted first)

        Raises:
            ValueError: If retention is not positive
            StorageSetupError: If the data directory cannot be created
        """
        if retention < 1:
            raise ValueError("Retention must be at least 1")

        self.data_file: Path = data_file.expanduser()
        self.retention: int = retention
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Cannot create data directory {self.data_file.parent}: {exc}"
            raise StorageSetupError(msg) from exc

        self._samples: _Document[Sample] = _Document(self.data_file, _SAMPLE_ADAPTER, "sample")
        self._outages: _Document[OutageEvent] = _Document(
            outages_path_for(self.data_file), _OUTAGE_ADAPTER, "outage"
        )
        self._lock: ProcessLock = ProcessLock(lock_path_for(self.data_file))

    @property
    def outages_file(self) -> Path:
        return self._outages.path

    @property
    def lock_file(self) -> Path:
        return self._lock.path

    def load(self) -> LoadReport:
        """Load both documents, dropping records that fail validation.

        Returns:
            Counts of loaded and dropped records per document
        """
        samples_loaded, samples_dropped = self._samples.load()
        outages_loaded, outages_dropped = self._outages.load()
        with self._samples.lock:
            overflow = len(self._samples.items) - self.retention
            if overflow > 0:
                # Retention was lowered since the document was written
                del self._samples.items[:overflow]
                samples_loaded -= overflow
        report = LoadReport(
            samples_loaded=samples_loaded,
            outages_loaded=outages_loaded,
            samples_dropped=samples_dropped,
            outages_dropped=outages_dropped,
        )
        if report.dropped:
            logger.warning(
                "Dropped invalid records while loading history",
                extra={
                    "samples_dropped": samples_dropped,
                    "outages_dropped": outages_dropped,
                },
            )
        logger.info(
            "Loaded history",
            extra={
                "data_file": str(self.data_file),
                "samples": samples_loaded,
                "outages": outages_loaded,
            },
        )
        return report

    def append(self, sample: Sample) -> bool:
        """Add a sample, apply retention and rewrite the sample document.

        Returns:
            True if the document was written, False if the write failed
            (the sample is kept in memory either way)
        """
        doc = self._samples
        with doc.lock:
            doc.items.append(sample)
            overflow = len(doc.items) - self.retention
            if overflow > 0:
                del doc.items[:overflow]
            return doc.persist()

    def upsert_outage(self, event: OutageEvent) -> bool:
        """Insert an outage or replace the record with the same id.

        Opening and closing an outage are the same logical record; the close
        is persisted by replacing it in place.

        Returns:
            True if the document was written
        """
        doc = self._outages
        with doc.lock:
            for index, existing in enumerate(doc.items):
                if existing.id == event.id:
                    doc.items[index] = event
                    break
            else:
                doc.items.append(event)
            return doc.persist()

    def query(self, since: datetime | None = None) -> list[Sample]:
        """Return a copy of the samples, optionally those at or after ``since``."""
        with self._samples.lock:
            if since is None:
                return list(self._samples.items)
            return [sample for sample in self._samples.items if sample.timestamp >= since]

    def latest(self, count: int = 10) -> list[Sample]:
        """Return the ``count`` most recent samples, oldest first."""
        if count <= 0:
            return []
        with self._samples.lock:
            return self._samples.items[-count:]

    def outages(self, since: datetime | None = None) -> list[OutageEvent]:
        """Return a copy of the outages, optionally those started at or after ``since``."""
        with self._outages.lock:
            if since is None:
                return list(self._outages.items)
            return [event for event in self._outages.items if event.start_time >= since]

    def open_outage(self) -> OutageEvent | None:
        """Return the most recently started open outage, if any."""
        with self._outages.lock:
            open_events = [event for event in self._outages.items if event.is_open]
        if not open_events:
            return None
        return max(open_events, key=lambda event: event.start_time)

    def clear(self) -> bool:
        """Empty both documents and persist the empty state.

        Returns:
            True if both documents were written
        """
        results: list[bool] = []
        for doc in (self._samples, self._outages):
            with doc.lock:
                doc.items.clear()
                results.append(doc.persist())
        logger.info("Cleared monitoring history", extra={"data_file": str(self.data_file)})
        return all(results)

    def acquire_lock(self) -> None:
        """Take the advisory lock for this data file.

        Raises:
            AlreadyRunningError: If another live process holds it
            StorageSetupError: If the lock file cannot be created
        """
        try:
            self._lock.acquire()
        except OSError as exc:
            msg = f"Cannot create lock file {self._lock.path}: {exc}"
            raise StorageSetupError(msg) from exc

    def release_lock(self) -> None:
        self._lock.release()

    def __len__(self) -> int:
        with self._samples.lock:
            return len(self._samples.items)
