"""Unit tests for the outage detection state machine.

Tests cover:
- Outage condition (total loss, partial loss corroborated by DNS)
- Debounced entry and immediate exit
- Warm start from persisted history
- Property-based testing of the single-open-outage invariant
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from netmon.core.outage_detector import (
    DetectorState,
    OutageDetector,
    OutageStateError,
    outage_id_for,
)
from netmon.types import DnsResult, OutageEvent, OutageMetrics, OutageType, PingResult, Sample

type SampleFactory = Callable[..., Sample]


def _sample_at(index: int, loss: float, dns_ok: bool) -> Sample:
    """Sample for tick ``index`` of a 30 second cadence."""
    latency = 0.0 if loss == 100 else 20.0
    return Sample(
        timestamp=datetime(2024, 1, 1, tzinfo=UTC) + timedelta(seconds=30 * index),
        ping=PingResult(host="h", min_ms=latency, avg_ms=latency, max_ms=latency, packet_loss_percent=loss),
        dns=DnsResult(response_time_ms=5.0, success=dns_ok),
    )


@pytest.mark.unit
class TestOutageCondition:
    """Test the per-sample outage rule."""

    @pytest.mark.parametrize(
        ("loss", "dns_ok", "expected"),
        [
            (100.0, True, True),
            (100.0, False, True),
            (60.0, False, True),
            (50.0, False, True),
            (60.0, True, False),
            (49.9, False, False),
            (0.0, False, False),
            (0.0, True, False),
        ],
    )
    def test_condition(self, make_sample: SampleFactory, loss: float, dns_ok: bool, expected: bool) -> None:
        detector = OutageDetector()

        assert detector.is_outage_condition(make_sample(loss=loss, dns_ok=dns_ok)) is expected

    def test_custom_loss_threshold(self, make_sample: SampleFactory) -> None:
        detector = OutageDetector(packet_loss_threshold=20.0)

        assert detector.is_outage_condition(make_sample(loss=25.0, dns_ok=False))

    def test_classify_tags_sample_before_debounce(self, make_sample: SampleFactory) -> None:
        """Test is_outage reflects the raw condition even when no event opens."""
        detector = OutageDetector()
        sample = make_sample(loss=100.0)

        assert detector.classify(sample) is None
        assert sample.is_outage is True

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"debounce_threshold": 0}, "Debounce threshold"),
            ({"packet_loss_threshold": 0.0}, "Packet loss threshold"),
            ({"packet_loss_threshold": 101.0}, "Packet loss threshold"),
        ],
    )
    def test_invalid_thresholds(self, kwargs: dict[str, float], message: str) -> None:
        with pytest.raises(ValueError, match=message):
            _ = OutageDetector(**kwargs)  # pyright: ignore[reportArgumentType]


@pytest.mark.unit
class TestTransitions:
    """Test debounced entry and immediate exit."""

    def test_single_total_loss_does_not_open(self, make_sample: SampleFactory) -> None:
        detector = OutageDetector()

        assert detector.classify(make_sample(loss=100.0)) is None
        assert detector.state is DetectorState.HEALTHY
        assert detector.consecutive_failures == 1

    def test_two_consecutive_failures_open_connectivity_outage(self, make_sample: SampleFactory) -> None:
        detector = OutageDetector()
        first = make_sample(seconds=0, loss=100.0)
        second = make_sample(seconds=30, loss=100.0, dns_ok=False)

        _ = detector.classify(first)
        event = detector.classify(second)

        assert event is not None
        assert event.is_open
        assert event.type is OutageType.CONNECTIVITY
        assert event.start_time == second.timestamp
        assert event.id == outage_id_for(second)
        assert event.metrics == OutageMetrics(packet_loss_percent=100.0, dns_failure=True)
        assert detector.state is DetectorState.OUTAGE
        assert detector.current_outage is event

    def test_partial_outage_type(self, make_sample: SampleFactory) -> None:
        detector = OutageDetector()

        _ = detector.classify(make_sample(seconds=0, loss=60.0, dns_ok=False))
        event = detector.classify(make_sample(seconds=30, loss=70.0, dns_ok=False))

        assert event is not None
        assert event.type is OutageType.PARTIAL
        assert event.metrics.packet_loss_percent == 70.0

    def test_partial_loss_with_working_dns_never_opens(self, make_sample: SampleFactory) -> None:
        detector = OutageDetector()

        results = [detector.classify(make_sample(seconds=i * 30, loss=60.0, dns_ok=True)) for i in range(10)]

        assert results == [None] * 10
        assert detector.state is DetectorState.HEALTHY

    def test_healthy_sample_resets_debounce(self, make_sample: SampleFactory) -> None:
        detector = OutageDetector()

        _ = detector.classify(make_sample(seconds=0, loss=100.0))
        _ = detector.classify(make_sample(seconds=30, loss=0.0))
        event = detector.classify(make_sample(seconds=60, loss=100.0))

        assert event is None
        assert detector.consecutive_failures == 1

    def test_continued_failure_does_not_reopen(self, make_sample: SampleFactory) -> None:
        detector = OutageDetector()

        _ = detector.classify(make_sample(seconds=0, loss=100.0))
        opened = detector.classify(make_sample(seconds=30, loss=100.0))
        later = [detector.classify(make_sample(seconds=60 + i * 30, loss=100.0)) for i in range(5)]

        assert opened is not None
        assert later == [None] * 5
        assert detector.current_outage is opened

    def test_recovery_is_immediate_with_exact_duration(self, make_sample: SampleFactory) -> None:
        detector = OutageDetector()
        _ = detector.classify(make_sample(seconds=0, loss=100.0))
        opened = detector.classify(make_sample(seconds=30, loss=100.0))
        recovery = make_sample(seconds=120, loss=0.0)

        closed = detector.classify(recovery)

        assert opened is not None
        assert closed is opened
        assert closed.end_time == recovery.timestamp
        assert closed.duration == 90.0
        assert closed.is_open is False
        assert detector.state is DetectorState.HEALTHY
        assert detector.consecutive_failures == 0

    def test_scenario_opens_at_second_sample_and_closes_at_third(
        self, make_sample: SampleFactory, t0: datetime
    ) -> None:
        """loss=100 at t0 and t1, loss=0 at t2: opens at t1, closes at t2."""
        detector = OutageDetector()
        t1 = make_sample(seconds=30, loss=100.0)
        t2 = make_sample(seconds=75, loss=0.0)

        assert detector.classify(make_sample(seconds=0, loss=100.0)) is None
        opened = detector.classify(t1)
        closed = detector.classify(t2)

        assert opened is not None
        assert closed is not None
        assert opened.start_time == t1.timestamp
        assert opened.start_time != t0
        assert closed.end_time == t2.timestamp
        assert closed.duration == (t2.timestamp - t1.timestamp).total_seconds()

    def test_clock_stepping_back_closes_with_zero_duration(self, make_sample: SampleFactory) -> None:
        detector = OutageDetector()
        _ = detector.classify(make_sample(seconds=0, loss=100.0))
        opened = detector.classify(make_sample(seconds=30, loss=100.0))

        closed = detector.classify(make_sample(seconds=25))

        assert opened is not None
        assert closed is opened
        assert closed.end_time == closed.start_time
        assert closed.duration == 0.0

    def test_debounce_threshold_of_one_opens_immediately(self, make_sample: SampleFactory) -> None:
        detector = OutageDetector(debounce_threshold=1)

        assert detector.classify(make_sample(loss=100.0)) is not None

    def test_closing_without_open_outage_raises(self, make_sample: SampleFactory) -> None:
        detector = OutageDetector()

        with pytest.raises(OutageStateError):
            _ = detector._close(make_sample())  # pyright: ignore[reportPrivateUsage]


@pytest.mark.unit
class TestSeed:
    """Test warm start from the outage history."""

    @staticmethod
    def _event(make_sample: SampleFactory, seconds: float, *, closed: bool) -> OutageEvent:
        sample = make_sample(seconds=seconds, loss=100.0)
        event = OutageEvent(
            id=outage_id_for(sample),
            start_time=sample.timestamp,
            type=OutageType.CONNECTIVITY,
            metrics=OutageMetrics(packet_loss_percent=100.0, dns_failure=False),
        )
        if closed:
            event.end_time = make_sample(seconds=seconds + 60).timestamp
            event.duration = 60.0
        return event

    def test_seed_adopts_open_outage(self, make_sample: SampleFactory) -> None:
        detector = OutageDetector()
        open_event = self._event(make_sample, 300, closed=False)

        detector.seed([self._event(make_sample, 0, closed=True), open_event])

        assert detector.current_outage is open_event
        assert detector.state is DetectorState.OUTAGE
        closed = detector.classify(make_sample(seconds=600))
        assert closed is open_event
        assert closed.duration == 300.0

    def test_seed_with_only_closed_outages(self, make_sample: SampleFactory) -> None:
        detector = OutageDetector()

        detector.seed([self._event(make_sample, 0, closed=True)])

        assert detector.current_outage is None

    def test_seed_with_several_open_outages_adopts_latest(
        self, make_sample: SampleFactory, caplog: pytest.LogCaptureFixture
    ) -> None:
        detector = OutageDetector()
        older = self._event(make_sample, 0, closed=False)
        newer = self._event(make_sample, 600, closed=False)

        with caplog.at_level(logging.WARNING, logger="netmon.core.outage_detector"):
            detector.seed([newer, older])

        assert detector.current_outage is newer
        assert "several open outages" in caplog.text


@pytest.mark.property
class TestSingleOpenOutageProperty:
    """Property-based checks over arbitrary sample sequences."""

    @given(
        steps=st.lists(
            st.tuples(
                st.sampled_from([0.0, 20.0, 49.0, 50.0, 60.0, 99.0, 100.0]),
                st.booleans(),
            ),
            max_size=60,
        ),
        debounce=st.integers(min_value=1, max_value=4),
    )
    def test_at_most_one_open_outage(self, steps: list[tuple[float, bool]], debounce: int) -> None:
        detector = OutageDetector(debounce_threshold=debounce)
        events: dict[str, OutageEvent] = {}
        opens = closes = 0

        for index, (loss, dns_ok) in enumerate(steps):
            sample = _sample_at(index, loss, dns_ok)
            transition = detector.classify(sample)
            if transition is not None:
                events[transition.id] = transition
                if transition.is_open:
                    opens += 1
                    # Opens and closes strictly alternate
                    assert opens == closes + 1
                else:
                    closes += 1
                    assert closes == opens
                    assert transition.duration is not None
                    assert transition.duration >= 0

            open_events = [event for event in events.values() if event.is_open]
            assert len(open_events) <= 1
            assert (detector.current_outage is None) == (not open_events)

