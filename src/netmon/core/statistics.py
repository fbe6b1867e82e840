"""Pure aggregation functions over sample and outage history.

This module provides stateless, side-effect-free functions for:
- Selecting the samples that fall inside a trailing time window
- Summarizing latency, packet loss, DNS and outage behaviour for a period
- Building the standard set of rolling periods shown while monitoring

Nothing here is cached; statistics are re-derived from the store on demand.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Final

from netmon.types.models import (
    DnsStats,
    NetworkStats,
    OutageEvent,
    OutageStats,
    PingStats,
    Sample,
)

ALL_TIME: Final[str] = "All Time"


@dataclass(slots=True, frozen=True)
class StatsPeriod:
    """A named trailing window. ``hours == 0`` means no filtering."""

    label: str
    hours: float


DEFAULT_PERIODS: Final[tuple[StatsPeriod, ...]] = (
    StatsPeriod("Last 5 Minutes", 1 / 12),
    StatsPeriod("Last Hour", 1),
    StatsPeriod("Last 24 Hours", 24),
    StatsPeriod(ALL_TIME, 0),
)


def round_half_away(value: float, places: int = 2) -> float:
    """Round half away from zero, unlike the builtin banker's rounding.

    Examples:
        >>> round_half_away(2.675)
        2.68
        >>> round_half_away(-0.125)
        -0.13
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_seconds(value: float) -> int:
    """Round a duration in seconds to a whole number, half away from zero."""
    return int(Decimal(repr(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def period_label(hours: float) -> str:
    """Human label for an ad-hoc period length.

    Examples:
        >>> period_label(0)
        'All Time'
        >>> period_label(1)
        'Last Hour'
        >>> period_label(6)
        'Last 6 Hours'
        >>> period_label(0.5)
        'Last 30 Minutes'
    """
    if hours == 0:
        return ALL_TIME
    if hours == 1:
        return "Last Hour"
    if hours < 1:
        return f"Last {round_seconds(hours * 60)} Minutes"
    if float(hours).is_integer():
        return f"Last {int(hours)} Hours"
    return f"Last {hours:g} Hours"


def window_of(
    samples: Iterable[Sample],
    hours: float,
    *,
    now: datetime | None = None,
) -> list[Sample]:
    """Select samples collected within the last ``hours``.

    ``hours == 0`` is not special-cased here; callers that mean "all time"
    must skip the call.

    Args:
        samples: Sample history
        hours: Window length in hours (fractional values allowed)
        now: Reference instant (defaults to the current UTC time)

    Returns:
        Samples with ``timestamp >= now - hours``, in input order
    """
    reference = now if now is not None else datetime.now(tz=UTC)
    since = reference - timedelta(hours=hours)
    return [sample for sample in samples if sample.timestamp >= since]


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _empty_stats(period: str, now: datetime) -> NetworkStats:
    return NetworkStats(
        period=period,
        start_time=now,
        end_time=now,
        ping_stats=PingStats(
            avg_latency=0.0,
            min_latency=0.0,
            max_latency=0.0,
            avg_packet_loss=0.0,
            uptime=0.0,
        ),
        dns_stats=DnsStats(avg_response_time=0.0, success_rate=0.0),
        outage_stats=OutageStats(
            total_outages=0,
            total_duration=0,
            avg_duration=0,
            longest_outage=0,
            outage_percentage=0.0,
        ),
        samples=0,
    )


def analyze_outages(
    outages: Iterable[OutageEvent],
    start_time: datetime,
    end_time: datetime,
    *,
    now: datetime,
) -> OutageStats:
    """Summarize outages that started inside ``[start_time, end_time]``.

    Open outages contribute ``now - start_time`` without being modified.
    """
    durations = [
        outage.elapsed(now).total_seconds()
        for outage in outages
        if start_time <= outage.start_time <= end_time
    ]
    if not durations:
        return OutageStats(
            total_outages=0,
            total_duration=0,
            avg_duration=0,
            longest_outage=0,
            outage_percentage=0.0,
        )

    total = sum(durations)
    span = (end_time - start_time).total_seconds()
    percentage = (total / span) * 100 if span > 0 else 0.0
    return OutageStats(
        total_outages=len(durations),
        total_duration=round_seconds(total),
        avg_duration=round_seconds(total / len(durations)),
        longest_outage=round_seconds(max(durations)),
        outage_percentage=round_half_away(percentage),
    )


def analyze(
    samples: Sequence[Sample],
    period: str,
    outages: Iterable[OutageEvent] = (),
    *,
    now: datetime | None = None,
) -> NetworkStats:
    """Compute statistics for a set of samples.

    The period bounds come from the first and last sample, not from the
    nominal window, so sparse data only reports on the span actually seen.

    Args:
        samples: Samples in collection order
        period: Label for the period
        outages: Outage history; only those starting inside the bounds count
        now: Reference instant for empty sets and open outages

    Returns:
        Rounded statistics; zeroed with ``samples == 0`` for empty input
    """
    reference = now if now is not None else datetime.now(tz=UTC)
    if not samples:
        return _empty_stats(period, reference)

    start_time = samples[0].timestamp
    end_time = samples[-1].timestamp
    count = len(samples)

    latencies = [sample.ping.avg_ms for sample in samples if sample.ping.avg_ms > 0]
    packet_losses = [sample.ping.packet_loss_percent for sample in samples]
    reachable = sum(1 for sample in samples if sample.ping.packet_loss_percent < 100)
    dns_times = [sample.dns.response_time_ms for sample in samples if sample.dns.success]

    ping_stats = PingStats(
        avg_latency=round_half_away(_mean(latencies)),
        min_latency=min(latencies) if latencies else 0.0,
        max_latency=max(latencies) if latencies else 0.0,
        avg_packet_loss=round_half_away(_mean(packet_losses)),
        uptime=round_half_away(reachable / count * 100),
    )
    dns_stats = DnsStats(
        avg_response_time=round_half_away(_mean(dns_times)),
        success_rate=round_half_away(len(dns_times) / count * 100),
    )

    return NetworkStats(
        period=period,
        start_time=start_time,
        end_time=end_time,
        ping_stats=ping_stats,
        dns_stats=dns_stats,
        outage_stats=analyze_outages(outages, start_time, end_time, now=reference),
        samples=count,
    )


def summarize(
    samples: Sequence[Sample],
    outages: Sequence[OutageEvent],
    periods: Iterable[StatsPeriod] = DEFAULT_PERIODS,
    *,
    now: datetime | None = None,
) -> Mapping[str, NetworkStats]:
    """Build statistics for several periods at once, keyed by label."""
    reference = now if now is not None else datetime.now(tz=UTC)
    result: dict[str, NetworkStats] = {}
    for period in periods:
        subset = samples if period.hours == 0 else window_of(samples, period.hours, now=reference)
        result[period.label] = analyze(subset, period.label, outages, now=reference)
    return result
