"""Type aliases shared across the health tracking engine."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Annotated

from pydantic import AfterValidator, Field

if TYPE_CHECKING:
    from netmon.types.models import TickSnapshot


def ensure_utc(value: datetime) -> datetime:
    """Normalize a timestamp to timezone-aware UTC.

    Naive timestamps are taken to be UTC already.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# Timestamps are always compared as aware UTC datetimes; records written by
# other tools without an offset are normalized on load
Timestamp = Annotated[datetime, AfterValidator(ensure_utc)]

Percentage = Annotated[float, Field(ge=0, le=100)]

# Presentation hand-off invoked once per completed tick
type TickCallback = Callable[["TickSnapshot"], None]
