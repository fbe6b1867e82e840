"""Monitor loop coordinating probing, outage detection, storage and notification.

The monitor drives one tick at a time:

    probe → classify → append sample → upsert outage (on transition)
          → notify → summarize → on_tick(snapshot)

Detector and store mutations therefore happen strictly in tick order. Store
calls run in a worker thread so disk writes do not block the event loop.
Shutdown is cooperative: a probe already in flight completes, but its
sample is discarded and nothing from that tick is persisted.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from uuid import uuid4

from netmon.core.config import MainConfig
from netmon.core.notifier import OutageNotifier
from netmon.core.outage_detector import OutageDetector
from netmon.core.probe import SystemProbe
from netmon.core.statistics import DEFAULT_PERIODS, StatsPeriod, summarize
from netmon.core.store import MetricStore
from netmon.types import LoadReport, OutageEvent, ProbeSource, TickCallback, TickSnapshot
from netmon.utils.logging import clear_correlation_id, set_correlation_id

__all__ = ["NetworkMonitor"]

type Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class NetworkMonitor:
    """Run the reachability tick loop until shutdown is requested."""

    def __init__(
        self,
        *,
        config: MainConfig,
        store: MetricStore,
        probe: ProbeSource | None = None,
        detector: OutageDetector | None = None,
        notifier: OutageNotifier | None = None,
        on_tick: TickCallback | None = None,
        periods: Iterable[StatsPeriod] = DEFAULT_PERIODS,
        clock: Clock = _utc_now,
    ) -> None:
        monitoring = config.monitoring
        self.config: MainConfig = config
        self.store: MetricStore = store
        self.probe: ProbeSource = probe or SystemProbe(
            monitoring.host,
            monitoring.dns_query_host,
            ping_count=monitoring.ping_count,
            timeout=monitoring.probe_timeout,
        )
        self.detector: OutageDetector = detector or OutageDetector(
            debounce_threshold=monitoring.outage_debounce,
            packet_loss_threshold=monitoring.outage_packet_loss_threshold,
        )
        self.notifier: OutageNotifier = notifier or OutageNotifier(config.notifications)
        self.on_tick: TickCallback | None = on_tick
        self.periods: tuple[StatsPeriod, ...] = tuple(periods)
        self.clock: Clock = clock
        self._interval: float = float(monitoring.interval)

        self._logger: logging.Logger = logging.getLogger(__name__)
        self._shutdown_event: asyncio.Event = asyncio.Event()
        self._is_running: bool = False
        self._ticks: int = 0
        self._session_id: str | None = None

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def ticks(self) -> int:
        """Number of ticks completed since start."""
        return self._ticks

    @property
    def session_id(self) -> str | None:
        return self._session_id

    def request_shutdown(self) -> None:
        """Signal the loop to stop after the current tick."""
        if self._shutdown_event.is_set():
            return
        self._logger.info("Shutdown requested for monitor")
        self._shutdown_event.set()

    def prepare(self) -> LoadReport:
        """Load history and restore the detector's open outage."""
        report = self.store.load()
        self.detector.seed(self.store.outages())
        return report

    async def start(self, *, once: bool = False) -> None:
        """Run ticks until shutdown is requested, or a single tick with ``once``.

        Raises:
            RuntimeError: If the monitor is already running
            AlreadyRunningError: If another process holds the data file lock
            StorageSetupError: If the lock file cannot be created
        """
        if self._is_running:
            msg = "Monitor is already running"
            raise RuntimeError(msg)

        self.store.acquire_lock()
        self._is_running = True
        self._ticks = 0
        self._session_id = uuid4().hex[:8]
        set_correlation_id(self._session_id)
        try:
            _ = await asyncio.to_thread(self.prepare)
            self._logger.info(
                "Monitoring started",
                extra={
                    "host": self.config.monitoring.host,
                    "interval": self._interval,
                    "data_file": str(self.store.data_file),
                },
            )
            await self._run_loop(once=once)
        finally:
            self.store.release_lock()
            self._is_running = False
            self._logger.info("Monitoring stopped", extra={"ticks": self._ticks})
            clear_correlation_id()
            self._session_id = None

    async def _run_loop(self, *, once: bool) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while not self._shutdown_event.is_set():
            _ = await self.tick()
            if once:
                break

            next_tick += self._interval
            # Skip missed slots instead of bursting to catch up
            while next_tick <= loop.time():
                next_tick += self._interval
            if await self._wait_for_shutdown(next_tick - loop.time()):
                break

    async def _wait_for_shutdown(self, timeout: float) -> bool:
        try:
            _ = await asyncio.wait_for(self._shutdown_event.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    async def tick(self) -> TickSnapshot | None:
        """Run one probe → classify → persist → notify cycle.

        Returns:
            The snapshot handed to ``on_tick``, or None if the probe failed
            or shutdown was requested while probing
        """
        try:
            sample = await self.probe.collect()
        except Exception:
            # A crashing probe source costs one tick, not the session
            self._logger.exception("Probe failed; skipping tick")
            return None
        if self._shutdown_event.is_set():
            self._logger.debug("Discarding sample collected during shutdown")
            return None

        transition = self.detector.classify(sample)
        _ = await asyncio.to_thread(self.store.append, sample)
        if transition is not None:
            _ = await asyncio.to_thread(self.store.upsert_outage, transition)
            self._notify(transition)

        stats = summarize(self.store.query(), self.store.outages(), self.periods, now=self.clock())
        snapshot = TickSnapshot(
            sample=sample,
            current_outage=self.detector.current_outage,
            transition=transition,
            stats=stats,
        )
        self._ticks += 1
        self._logger.debug(
            "Tick complete",
            extra={
                "avg_ms": sample.ping.avg_ms,
                "packet_loss": sample.ping.packet_loss_percent,
                "dns_success": sample.dns.success,
                "is_outage": sample.is_outage,
            },
        )
        if self.on_tick is not None:
            self.on_tick(snapshot)
        return snapshot

    def _notify(self, transition: OutageEvent) -> None:
        host = self.config.monitoring.host
        if transition.is_open:
            _ = self.notifier.outage_started(transition, host)
        else:
            _ = self.notifier.outage_ended(transition, host)
