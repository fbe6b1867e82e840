"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from netmon.types import DnsResult, PingResult, Sample
from netmon.utils.logging import CorrelationIDFilter

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

type SampleFactory = Callable[..., Sample]


def build_sample(
    *,
    at: datetime = T0,
    seconds: float = 0.0,
    avg_ms: float = 20.0,
    loss: float = 0.0,
    dns_ok: bool = True,
    dns_ms: float = 12.0,
    host: str = "8.8.8.8",
) -> Sample:
    """Build a sample ``seconds`` after ``at``.

    Total loss zeroes the latencies, the way the probe reports it.
    """
    latency = 0.0 if loss == 100 else avg_ms
    return Sample(
        timestamp=at + timedelta(seconds=seconds),
        ping=PingResult(
            host=host,
            min_ms=latency * 0.9,
            avg_ms=latency,
            max_ms=latency * 1.1,
            packet_loss_percent=loss,
        ),
        dns=DnsResult(response_time_ms=dns_ms, success=dns_ok),
    )


@pytest.fixture
def t0() -> datetime:
    """Instant that factory samples are anchored at."""
    return T0


@pytest.fixture
def make_sample() -> SampleFactory:
    """Factory for samples anchored at a fixed instant."""
    return build_sample


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    """Sample document path inside a fresh directory."""
    return tmp_path / "netmon" / "metrics.json"


@pytest.fixture(autouse=True)
def restore_root_logging() -> Generator[None]:
    """Remove handlers installed by configure_logging during a test."""
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        if any(isinstance(item, CorrelationIDFilter) for item in handler.filters):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)
