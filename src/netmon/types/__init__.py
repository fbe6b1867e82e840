"""Type definitions and protocols for netmon.

This package provides:
- Data models (dataclasses validated by pydantic at the storage boundary)
- Protocol definitions for the probe and notification collaborators
- Type aliases
"""

from netmon.types.aliases import Percentage, TickCallback, Timestamp, ensure_utc
from netmon.types.models import (
    DnsResult,
    DnsStats,
    LoadReport,
    NetworkStats,
    OutageEvent,
    OutageMetrics,
    OutageStats,
    OutageType,
    PingResult,
    PingStats,
    Sample,
    TickSnapshot,
)
from netmon.types.protocols import NotificationSink, ProbeSource

__all__ = [
    # Type aliases
    "Percentage",
    "TickCallback",
    "Timestamp",
    "ensure_utc",
    # Data models
    "DnsResult",
    "DnsStats",
    "LoadReport",
    "NetworkStats",
    "OutageEvent",
    "OutageMetrics",
    "OutageStats",
    "OutageType",
    "PingResult",
    "PingStats",
    "Sample",
    "TickSnapshot",
    # Protocols
    "NotificationSink",
    "ProbeSource",
]
