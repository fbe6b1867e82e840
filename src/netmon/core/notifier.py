"""Outage notifications.

Turns detector transitions into short human messages and hands them to a
``NotificationSink``. Delivery problems are isolated: a failing sink is
logged and never interrupts monitoring.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Final

from netmon.core.config import NotificationsConfig
from netmon.core.statistics import round_seconds
from netmon.types import NotificationSink, OutageEvent, OutageType
from netmon.utils.formatting import format_duration, format_timestamp
from netmon.utils.template import replace_placeholders

logger = logging.getLogger(__name__)

OUTAGE_STARTED_TITLE: Final[str] = "Network Outage Detected"
OUTAGE_ENDED_TITLE: Final[str] = "Network Restored"

_TYPE_LABELS: Final[Mapping[OutageType, str]] = {
    OutageType.CONNECTIVITY: "Complete",
    OutageType.PARTIAL: "Partial",
}


class LogSink:
    """Default sink that writes notifications to the application log."""

    def __init__(self, logger_name: str = "netmon.notifications") -> None:
        self._logger: logging.Logger = logging.getLogger(logger_name)

    def deliver(self, title: str, message: str, *, urgent: bool) -> None:
        level = logging.WARNING if urgent else logging.INFO
        self._logger.log(level, "%s: %s", title, message)


def placeholder_values(event: OutageEvent, host: str) -> dict[str, object]:
    """Values available to notification templates for ``event``."""
    duration = round_seconds(event.duration) if event.duration is not None else 0
    return {
        "host": host,
        "outage_type": _TYPE_LABELS[event.type],
        "packet_loss": f"{event.metrics.packet_loss_percent:g}%",
        "dns_status": "failed" if event.metrics.dns_failure else "ok",
        "started_at": format_timestamp(event.start_time),
        "duration": format_duration(duration),
    }


class OutageNotifier:
    """Notification collaborator driven by the monitor loop."""

    def __init__(self, config: NotificationsConfig, sink: NotificationSink | None = None) -> None:
        self.config: NotificationsConfig = config
        self.sink: NotificationSink = sink if sink is not None else LogSink()

    def outage_started(self, event: OutageEvent, host: str) -> bool:
        """Announce a newly opened outage.

        Returns:
            True if a notification was delivered
        """
        if not (self.config.enabled and self.config.on_outage_start):
            return False
        message = replace_placeholders(self.config.outage_start_template, placeholder_values(event, host))
        return self._deliver(OUTAGE_STARTED_TITLE, message, event)

    def outage_ended(self, event: OutageEvent, host: str) -> bool:
        """Announce recovery, unless the outage was shorter than the floor.

        Returns:
            True if a notification was delivered
        """
        if not (self.config.enabled and self.config.on_outage_end):
            return False

        duration = round_seconds(event.duration) if event.duration is not None else 0
        if duration < self.config.min_outage_duration:
            logger.debug(
                "Suppressing recovery notification for short outage",
                extra={"outage_id": event.id, "duration_seconds": duration},
            )
            return False

        message = replace_placeholders(self.config.outage_end_template, placeholder_values(event, host))
        return self._deliver(OUTAGE_ENDED_TITLE, message, event)

    def _deliver(self, title: str, message: str, event: OutageEvent) -> bool:
        try:
            self.sink.deliver(title, message, urgent=event.is_open)
        except Exception:
            # Sinks are isolated from the monitor loop
            logger.exception(
                "Notification delivery failed",
                extra={"outage_id": event.id, "sink": type(self.sink).__name__},
            )
            return False
        logger.info(
            "Notification delivered",
            extra={"outage_id": event.id, "title": title},
        )
        return True
