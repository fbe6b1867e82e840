"""Data models for the netmon health tracking engine.

Samples and outage events are plain dataclasses. They are validated and
serialized at the storage boundary through pydantic ``TypeAdapter`` objects,
so the annotations below double as the on-disk record schema.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Annotated

from pydantic import Field

from netmon.types.aliases import Percentage, Timestamp


class OutageType(Enum):
    """Classification of an outage event.

    - CONNECTIVITY: total loss, every ping packet was dropped
    - PARTIAL: elevated packet loss corroborated by a DNS failure
    """

    CONNECTIVITY = "connectivity"
    PARTIAL = "partial"


@dataclass(slots=True, frozen=True)
class PingResult:
    """Summary of one ping burst against the monitored host.

    ``avg_ms == 0`` is the sentinel for "no latency could be measured".
    """

    host: str
    min_ms: Annotated[float, Field(ge=0)]
    avg_ms: Annotated[float, Field(ge=0)]
    max_ms: Annotated[float, Field(ge=0)]
    packet_loss_percent: Percentage


@dataclass(slots=True, frozen=True)
class DnsResult:
    """Outcome of one DNS resolution attempt."""

    response_time_ms: Annotated[float, Field(ge=0)]
    success: bool


@dataclass(slots=True)
class Sample:
    """One reachability measurement.

    Produced once per tick by the probe. The only field that changes after
    construction is ``is_outage``, which the outage detector sets.
    """

    timestamp: Timestamp
    ping: PingResult
    dns: DnsResult
    is_outage: bool = False


@dataclass(slots=True, frozen=True)
class OutageMetrics:
    """Snapshot of the sample that opened an outage."""

    packet_loss_percent: Percentage
    dns_failure: bool


@dataclass(slots=True)
class OutageEvent:
    """A contiguous span of degraded or lost connectivity.

    Open while ``end_time`` is None. Closing sets ``end_time`` and
    ``duration`` (seconds) exactly once.
    """

    id: str
    start_time: Timestamp
    type: OutageType
    metrics: OutageMetrics
    end_time: Timestamp | None = None
    duration: Annotated[float, Field(ge=0)] | None = None

    @property
    def is_open(self) -> bool:
        """Return True while the outage has not been closed."""
        return self.end_time is None

    def elapsed(self, now: datetime) -> timedelta:
        """Return the outage length, measured up to ``now`` if still open."""
        end = self.end_time if self.end_time is not None else now
        return end - self.start_time


@dataclass(slots=True, frozen=True)
class PingStats:
    """Latency and loss aggregates for a period."""

    avg_latency: float
    min_latency: float
    max_latency: float
    avg_packet_loss: float
    uptime: float


@dataclass(slots=True, frozen=True)
class DnsStats:
    """DNS resolution aggregates for a period."""

    avg_response_time: float
    success_rate: float


@dataclass(slots=True, frozen=True)
class OutageStats:
    """Outage aggregates for a period. Durations are whole seconds."""

    total_outages: int
    total_duration: int
    avg_duration: int
    longest_outage: int
    outage_percentage: float


@dataclass(slots=True, frozen=True)
class NetworkStats:
    """Derived statistics over a set of samples. Never persisted."""

    period: str
    start_time: datetime
    end_time: datetime
    ping_stats: PingStats
    dns_stats: DnsStats
    outage_stats: OutageStats
    samples: int


@dataclass(slots=True, frozen=True)
class LoadReport:
    """Outcome of loading both documents from disk."""

    samples_loaded: int
    outages_loaded: int
    samples_dropped: int
    outages_dropped: int

    @property
    def dropped(self) -> int:
        return self.samples_dropped + self.outages_dropped


@dataclass(slots=True, frozen=True)
class TickSnapshot:
    """Read-only data handed to the presentation layer after each tick."""

    sample: Sample
    current_outage: OutageEvent | None
    transition: OutageEvent | None
    stats: Mapping[str, NetworkStats] = field(default_factory=dict)
