"""Outage detection state machine.

Consumes samples in arrival order and turns sustained outage conditions into
``OutageEvent`` transitions:

    HEALTHY → OUTAGE: the outage condition held for ``debounce_threshold``
                      consecutive samples
    OUTAGE → HEALTHY: the first sample where the condition no longer holds

Entry is debounced so a single dropped burst never registers as an outage;
exit is immediate so recovery is reported on the very next healthy sample.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from typing import Final

from netmon.types.models import OutageEvent, OutageMetrics, OutageType, Sample

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_THRESHOLD: Final[int] = 2
DEFAULT_PACKET_LOSS_THRESHOLD: Final[float] = 50.0
TOTAL_LOSS: Final[float] = 100.0


class DetectorState(Enum):
    """States of the outage detector."""

    HEALTHY = "healthy"
    OUTAGE = "outage"


class OutageStateError(Exception):
    """Raised when the detector is asked to close an outage it does not hold.

    This signals that the state machine has desynchronized from the sample
    stream and must not be recovered from silently.
    """


def outage_id_for(sample: Sample) -> str:
    """Derive the outage identifier from the opening sample's instant."""
    return f"outage-{int(sample.timestamp.timestamp() * 1000)}"


class OutageDetector:
    """Debounced outage classifier.

    The detector owns only its transient classification state: the currently
    open event and the consecutive-failure counter. History lives in the
    store; ``seed`` reconstructs the open event from it on warm start.
    """

    def __init__(
        self,
        *,
        debounce_threshold: int = DEFAULT_DEBOUNCE_THRESHOLD,
        packet_loss_threshold: float = DEFAULT_PACKET_LOSS_THRESHOLD,
    ) -> None:
        """Initialize the detector in the HEALTHY state.

        Args:
            debounce_threshold: Consecutive outage samples required to open
                an outage (must be at least 1)
            packet_loss_threshold: Partial loss percentage that counts as an
                outage when DNS also fails

        Raises:
            ValueError: If a threshold is out of range
        """
        if debounce_threshold < 1:
            raise ValueError("Debounce threshold must be at least 1")
        if not 0.0 < packet_loss_threshold <= TOTAL_LOSS:
            raise ValueError("Packet loss threshold must be in (0, 100]")

        self.debounce_threshold: int = debounce_threshold
        self.packet_loss_threshold: float = packet_loss_threshold
        self._open_event: OutageEvent | None = None
        self._consecutive_failures: int = 0

    @property
    def state(self) -> DetectorState:
        return DetectorState.OUTAGE if self._open_event is not None else DetectorState.HEALTHY

    @property
    def current_outage(self) -> OutageEvent | None:
        """Return the open outage, if any."""
        return self._open_event

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def is_outage_condition(self, sample: Sample) -> bool:
        """Evaluate the outage rule for a single sample.

        Total loss is an outage on its own. Partial loss above the threshold
        only counts when a DNS failure corroborates it.
        """
        loss = sample.ping.packet_loss_percent
        if loss == TOTAL_LOSS:
            return True
        return loss >= self.packet_loss_threshold and not sample.dns.success

    def classify(self, sample: Sample) -> OutageEvent | None:
        """Feed one sample through the state machine.

        Tags ``sample.is_outage`` regardless of debouncing.

        Args:
            sample: Next sample in tick order

        Returns:
            The newly opened event, the event that just closed, or None when
            no transition happened
        """
        condition = self.is_outage_condition(sample)
        sample.is_outage = condition

        if condition:
            self._consecutive_failures += 1
            if self._open_event is None and self._consecutive_failures >= self.debounce_threshold:
                return self._open(sample)
            return None

        if self._open_event is not None:
            closed = self._close(sample)
            self._consecutive_failures = 0
            return closed

        self._consecutive_failures = 0
        return None

    def seed(self, outages: Iterable[OutageEvent]) -> None:
        """Restore the open outage from persisted history.

        Args:
            outages: Outage history loaded from the store
        """
        open_events = [event for event in outages if event.is_open]
        self._consecutive_failures = 0
        if not open_events:
            self._open_event = None
            return

        open_events.sort(key=lambda event: event.start_time)
        if len(open_events) > 1:
            logger.warning(
                "Outage history contains several open outages; adopting the most recent",
                extra={
                    "open_outages": len(open_events),
                    "adopted_id": open_events[-1].id,
                },
            )
        self._open_event = open_events[-1]
        logger.info(
            "Resuming open outage from history",
            extra={"outage_id": self._open_event.id, "outage_type": self._open_event.type.value},
        )

    def _open(self, sample: Sample) -> OutageEvent:
        loss = sample.ping.packet_loss_percent
        event = OutageEvent(
            id=outage_id_for(sample),
            start_time=sample.timestamp,
            type=OutageType.CONNECTIVITY if loss == TOTAL_LOSS else OutageType.PARTIAL,
            metrics=OutageMetrics(
                packet_loss_percent=loss,
                dns_failure=not sample.dns.success,
            ),
        )
        self._open_event = event
        logger.warning(
            "Outage started",
            extra={
                "outage_id": event.id,
                "outage_type": event.type.value,
                "packet_loss": loss,
                "dns_failure": event.metrics.dns_failure,
            },
        )
        return event

    def _close(self, sample: Sample) -> OutageEvent:
        event = self._open_event
        if event is None:
            msg = "Cannot close an outage: no outage is open"
            raise OutageStateError(msg)

        # A wall clock stepped backwards must not yield a negative duration
        event.end_time = max(sample.timestamp, event.start_time)
        event.duration = (event.end_time - event.start_time).total_seconds()
        self._open_event = None
        logger.info(
            "Outage ended",
            extra={"outage_id": event.id, "duration_seconds": event.duration},
        )
        return event
