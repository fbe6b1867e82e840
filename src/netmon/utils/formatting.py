"""Pure formatting utilities for human-readable output.

This module provides stateless formatting functions for converting raw
measurements into display strings, plus the thresholds that grade a value
as good, degraded or bad. Colors are applied by the presentation layer.
"""

from datetime import datetime
from enum import Enum

# Time unit constants
_MINUTE = 60
_HOUR = _MINUTE * 60  # 3,600
_DAY = _HOUR * 24  # 86,400

# Grading thresholds
_LATENCY_GOOD_MS = 50.0
_LATENCY_DEGRADED_MS = 100.0
_LOSS_DEGRADED_PERCENT = 5.0
_RATE_GOOD_PERCENT = 99.0
_RATE_DEGRADED_PERCENT = 95.0


class Grade(Enum):
    """Quality grade of a displayed value."""

    NONE = "none"
    GOOD = "good"
    DEGRADED = "degraded"
    BAD = "bad"


def format_duration(seconds: float) -> str:
    """Convert seconds to human-readable duration format.

    Shows the two most significant units.

    Args:
        seconds: Duration in seconds (must be non-negative)

    Returns:
        Duration string with adaptive granularity.

    Examples:
        >>> format_duration(45)
        '45s'
        >>> format_duration(90)
        '1m 30s'
        >>> format_duration(3665)
        '1h 1m'
        >>> format_duration(90000)
        '1d 1h'
    """
    if seconds < 0:
        msg = "seconds must be non-negative"
        raise ValueError(msg)

    total_seconds = int(seconds)

    if total_seconds >= _DAY:
        days = total_seconds // _DAY
        hours = (total_seconds % _DAY) // _HOUR
        if hours > 0:
            return f"{days}d {hours}h"
        return f"{days}d"

    if total_seconds >= _HOUR:
        hours = total_seconds // _HOUR
        minutes = (total_seconds % _HOUR) // _MINUTE
        if minutes > 0:
            return f"{hours}h {minutes}m"
        return f"{hours}h"

    if total_seconds >= _MINUTE:
        minutes = total_seconds // _MINUTE
        remaining = total_seconds % _MINUTE
        if remaining > 0:
            return f"{minutes}m {remaining}s"
        return f"{minutes}m"

    return f"{total_seconds}s"


def format_latency(ms: float) -> str:
    """Format a latency, ``N/A`` when nothing was measured.

    Examples:
        >>> format_latency(0)
        'N/A'
        >>> format_latency(23.456)
        '23.46ms'
    """
    if ms == 0:
        return "N/A"
    return f"{ms:.2f}ms"


def format_percent(value: float) -> str:
    """Format a percentage without trailing zeros.

    Examples:
        >>> format_percent(100.0)
        '100%'
        >>> format_percent(99.5)
        '99.5%'
    """
    return f"{value:g}%"


def format_timestamp(value: datetime) -> str:
    """Render an instant in the local timezone, to the second."""
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def grade_latency(ms: float) -> Grade:
    if ms == 0:
        return Grade.NONE
    if ms < _LATENCY_GOOD_MS:
        return Grade.GOOD
    if ms < _LATENCY_DEGRADED_MS:
        return Grade.DEGRADED
    return Grade.BAD


def grade_packet_loss(loss: float) -> Grade:
    if loss == 0:
        return Grade.GOOD
    if loss < _LOSS_DEGRADED_PERCENT:
        return Grade.DEGRADED
    return Grade.BAD


def grade_rate(rate: float) -> Grade:
    """Grade an uptime or success rate percentage."""
    if rate >= _RATE_GOOD_PERCENT:
        return Grade.GOOD
    if rate >= _RATE_DEGRADED_PERCENT:
        return Grade.DEGRADED
    return Grade.BAD
