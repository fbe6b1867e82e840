"""Application runner for the network monitor."""

from __future__ import annotations

import asyncio
import logging
import signal

from netmon.core.config import MainConfig
from netmon.core.monitor import NetworkMonitor
from netmon.core.notifier import OutageNotifier
from netmon.core.store import MetricStore
from netmon.types import NotificationSink, ProbeSource, TickCallback

_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ApplicationRunner:
    """Wire configuration into a ``NetworkMonitor`` and run it to completion."""

    def __init__(
        self,
        config: MainConfig,
        *,
        run_once: bool = False,
        on_tick: TickCallback | None = None,
        probe: ProbeSource | None = None,
        sink: NotificationSink | None = None,
    ) -> None:
        """Initialize the application runner.

        Args:
            config: Validated configuration with CLI overrides applied
            run_once: Collect a single sample and exit
            on_tick: Presentation callback invoked after each tick
            probe: Probe source override (defaults to the system probe)
            sink: Notification sink override (defaults to the log sink)

        Raises:
            StorageSetupError: If the data directory cannot be created
        """
        self.config: MainConfig = config
        self.run_once: bool = run_once
        self.store: MetricStore = MetricStore(
            config.monitoring.data_file,
            retention=config.monitoring.retention,
        )
        self.monitor: NetworkMonitor = NetworkMonitor(
            config=config,
            store=self.store,
            probe=probe,
            notifier=OutageNotifier(config.notifications, sink),
            on_tick=on_tick,
        )
        self._logger: logging.Logger = logging.getLogger(__name__)

    def run(self) -> None:
        """Run the monitor until it stops or a shutdown signal arrives."""
        asyncio.run(self.run_async())

    async def run_async(self) -> None:
        """Async lifecycle with SIGINT/SIGTERM mapped to a graceful shutdown.

        Raises:
            AlreadyRunningError: If another monitor holds the data file lock
            StorageSetupError: If the lock file cannot be created
        """
        loop = asyncio.get_running_loop()
        installed: list[signal.Signals] = []
        for sig in _SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError):
                # No signal support (Windows loop or non-main thread)
                continue
            installed.append(sig)

        try:
            await self.monitor.start(once=self.run_once)
        finally:
            for sig in installed:
                _ = loop.remove_signal_handler(sig)
            self._logger.info("Network monitor shutdown complete")

    def _on_signal(self, sig: signal.Signals) -> None:
        self._logger.info("Shutdown signal received", extra={"signal": sig.name})
        self.monitor.request_shutdown()
