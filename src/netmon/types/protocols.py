"""Protocol definitions for the collaborators of the health tracking engine.

The core only depends on these structural interfaces, never on a concrete
probe implementation or notification channel.
"""

from typing import Protocol, runtime_checkable

from netmon.types.models import Sample


@runtime_checkable
class ProbeSource(Protocol):
    """Produces one fully populated sample per tick."""

    async def collect(self) -> Sample:
        """Measure ping and DNS reachability.

        Returns:
            A complete sample. Sub-probe failures are folded into the sample
            as 100% packet loss or a failed lookup; nothing is raised.
        """
        ...


@runtime_checkable
class NotificationSink(Protocol):
    """Delivery channel for outage notifications."""

    def deliver(self, title: str, message: str, *, urgent: bool) -> None:
        """Surface a notification to the user.

        Args:
            title: Short headline
            message: Human-readable body
            urgent: True for outage starts, False for recoveries
        """
        ...
