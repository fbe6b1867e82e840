"""Unit tests for statistics aggregation."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from netmon.core.statistics import (
    ALL_TIME,
    DEFAULT_PERIODS,
    StatsPeriod,
    analyze,
    analyze_outages,
    period_label,
    round_half_away,
    round_seconds,
    summarize,
    window_of,
)
from netmon.types import DnsResult, OutageEvent, OutageMetrics, OutageType, PingResult, Sample

type SampleFactory = Callable[..., Sample]


def _outage(start: datetime, *, seconds: float | None) -> OutageEvent:
    event = OutageEvent(
        id=f"outage-{int(start.timestamp() * 1000)}",
        start_time=start,
        type=OutageType.CONNECTIVITY,
        metrics=OutageMetrics(packet_loss_percent=100.0, dns_failure=True),
    )
    if seconds is not None:
        event.end_time = start + timedelta(seconds=seconds)
        event.duration = seconds
    return event


@pytest.mark.unit
class TestRounding:
    """Test half-away-from-zero rounding."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (2.675, 2.68),
            (0.125, 0.13),
            (-0.125, -0.13),
            (1.004, 1.0),
            (99.995, 100.0),
            (0.0, 0.0),
        ],
    )
    def test_round_half_away(self, value: float, expected: float) -> None:
        assert round_half_away(value) == expected

    @pytest.mark.parametrize(("value", "expected"), [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (89.9, 90)])
    def test_round_seconds(self, value: float, expected: int) -> None:
        assert round_seconds(value) == expected


@pytest.mark.unit
class TestPeriodLabel:
    @pytest.mark.parametrize(
        ("hours", "expected"),
        [
            (0, ALL_TIME),
            (1, "Last Hour"),
            (24, "Last 24 Hours"),
            (0.5, "Last 30 Minutes"),
            (1 / 12, "Last 5 Minutes"),
            (1.5, "Last 1.5 Hours"),
        ],
    )
    def test_labels(self, hours: float, expected: str) -> None:
        assert period_label(hours) == expected


@pytest.mark.unit
class TestWindowOf:
    """Test trailing window selection."""

    def test_selects_samples_inside_window(self, make_sample: SampleFactory, t0: datetime) -> None:
        samples = [make_sample(seconds=minutes * 60) for minutes in range(0, 121, 10)]
        now = t0 + timedelta(minutes=120)

        result = window_of(samples, 1, now=now)

        assert [sample.timestamp for sample in result] == [
            t0 + timedelta(minutes=minutes) for minutes in range(60, 121, 10)
        ]

    def test_boundary_is_inclusive(self, make_sample: SampleFactory, t0: datetime) -> None:
        sample = make_sample()

        assert window_of([sample], 1, now=t0 + timedelta(hours=1)) == [sample]

    def test_fractional_hours(self, make_sample: SampleFactory, t0: datetime) -> None:
        samples = [make_sample(seconds=s) for s in (0, 240, 400, 600)]

        result = window_of(samples, 1 / 12, now=t0 + timedelta(seconds=600))

        assert [sample.timestamp for sample in result] == [
            t0 + timedelta(seconds=s) for s in (400, 600)
        ]

    def test_zero_hours_is_not_all_time(self, make_sample: SampleFactory, t0: datetime) -> None:
        """hours == 0 is the caller's all-time sentinel; here it is an empty window."""
        samples = [make_sample(seconds=0), make_sample(seconds=30)]

        assert window_of(samples, 0, now=t0 + timedelta(seconds=60)) == []

    @given(hours=st.floats(min_value=0.01, max_value=48), offsets=st.lists(st.integers(0, 172_800), max_size=40))
    def test_idempotent(self, hours: float, offsets: list[int]) -> None:
        base = datetime.fromisoformat("2024-01-01T00:00:00+00:00")
        samples = [
            Sample(
                timestamp=base + timedelta(seconds=offset),
                ping=PingResult(host="h", min_ms=1, avg_ms=1, max_ms=1, packet_loss_percent=0),
                dns=DnsResult(response_time_ms=1, success=True),
            )
            for offset in sorted(offsets)
        ]
        now = base + timedelta(days=2)

        first = window_of(samples, hours, now=now)
        second = window_of(samples, hours, now=now)

        assert first == second
        assert window_of(first, hours, now=now) == first


@pytest.mark.unit
class TestAnalyze:
    """Test period statistics."""

    def test_empty_input(self, t0: datetime) -> None:
        stats = analyze([], "Last Hour", now=t0)

        assert stats.samples == 0
        assert stats.period == "Last Hour"
        assert stats.start_time == stats.end_time == t0
        assert stats.ping_stats.uptime == 0
        assert stats.ping_stats.avg_latency == 0
        assert stats.dns_stats.success_rate == 0
        assert stats.outage_stats.total_outages == 0

    def test_ten_healthy_samples(self, make_sample: SampleFactory) -> None:
        samples = [make_sample(seconds=i * 30) for i in range(10)]

        stats = analyze(samples, "Last Hour", [])

        assert stats.samples == 10
        assert stats.outage_stats.total_outages == 0
        assert stats.ping_stats.uptime == 100
        assert stats.dns_stats.success_rate == 100
        assert stats.start_time == samples[0].timestamp
        assert stats.end_time == samples[-1].timestamp

    def test_latency_excludes_unmeasured_samples(self, make_sample: SampleFactory) -> None:
        samples = [
            make_sample(seconds=0, avg_ms=10.0),
            make_sample(seconds=30, loss=100.0),
            make_sample(seconds=60, avg_ms=30.0),
        ]

        ping = analyze(samples, "p").ping_stats

        assert ping.avg_latency == 20.0
        assert ping.min_latency == 10.0
        assert ping.max_latency == 30.0
        assert ping.avg_packet_loss == 33.33
        assert ping.uptime == 66.67

    def test_dns_average_counts_successes_only(self, make_sample: SampleFactory) -> None:
        samples = [
            make_sample(seconds=0, dns_ms=10.0),
            make_sample(seconds=30, dns_ms=5000.0, dns_ok=False),
            make_sample(seconds=60, dns_ms=20.0),
            make_sample(seconds=90, dns_ms=30.0),
        ]

        dns = analyze(samples, "p").dns_stats

        assert dns.avg_response_time == 20.0
        assert dns.success_rate == 75.0

    def test_outages_filtered_by_sample_span(self, make_sample: SampleFactory, t0: datetime) -> None:
        samples = [make_sample(seconds=i * 60) for i in range(11)]
        inside = _outage(t0 + timedelta(seconds=120), seconds=60)
        before = _outage(t0 - timedelta(hours=1), seconds=600)
        after = _outage(t0 + timedelta(hours=2), seconds=30)

        outages = analyze(samples, "p", [before, inside, after]).outage_stats

        assert outages.total_outages == 1
        assert outages.total_duration == 60
        assert outages.longest_outage == 60
        # 60 s of a 600 s span
        assert outages.outage_percentage == 10.0

    def test_open_outage_counts_until_now_without_mutation(self, make_sample: SampleFactory, t0: datetime) -> None:
        samples = [make_sample(seconds=0), make_sample(seconds=600)]
        ongoing = _outage(t0 + timedelta(seconds=300), seconds=None)

        outages = analyze(samples, "p", [ongoing], now=t0 + timedelta(seconds=400)).outage_stats

        assert outages.total_outages == 1
        assert outages.total_duration == 100
        assert ongoing.end_time is None
        assert ongoing.duration is None

    def test_open_outage_percentage_is_not_capped(self, make_sample: SampleFactory, t0: datetime) -> None:
        samples = [make_sample(seconds=0), make_sample(seconds=600)]
        ongoing = _outage(t0 + timedelta(seconds=300), seconds=None)

        outages = analyze(samples, "p", [ongoing], now=t0 + timedelta(seconds=2100)).outage_stats

        assert outages.total_duration == 1800
        assert outages.outage_percentage == 300.0

    def test_single_sample_span_has_zero_percentage(self, make_sample: SampleFactory, t0: datetime) -> None:
        outages = analyze([make_sample()], "p", [_outage(t0, seconds=30)]).outage_stats

        assert outages.total_outages == 1
        assert outages.outage_percentage == 0.0

    def test_durations_rounded_to_whole_seconds(self, t0: datetime) -> None:
        result = analyze_outages(
            [_outage(t0, seconds=10.5), _outage(t0 + timedelta(seconds=60), seconds=20.4)],
            t0,
            t0 + timedelta(seconds=100),
            now=t0,
        )

        assert result.total_duration == 31
        assert result.avg_duration == 15
        assert result.longest_outage == 20
        assert result.outage_percentage == 30.9


@pytest.mark.unit
class TestSummarize:
    def test_default_periods(self, make_sample: SampleFactory, t0: datetime) -> None:
        # One sample per hour over two days
        samples = [make_sample(seconds=hour * 3600) for hour in range(48)]
        now = t0 + timedelta(hours=47)

        result = summarize(samples, [], now=now)

        assert list(result) == [period.label for period in DEFAULT_PERIODS]
        assert result["Last 5 Minutes"].samples == 1
        assert result["Last Hour"].samples == 2
        assert result["Last 24 Hours"].samples == 25
        assert result[ALL_TIME].samples == 48

    def test_custom_periods(self, make_sample: SampleFactory, t0: datetime) -> None:
        result = summarize([make_sample()], [], [StatsPeriod("Recent", 0.5)], now=t0 + timedelta(hours=1))

        assert result["Recent"].samples == 0
