"""
Injectable clocks.

Slot classification and status transitions depend on "now"; every
component receives a clock instead of reading the system time itself.
"""

from typing import Protocol

import pendulum
from pendulum import DateTime


class Clock(Protocol):
    """Source of the current time in the provider's timezone."""

    def now(self) -> DateTime:
        """Return the current time."""


class SystemClock:
    """Wall clock in a fixed IANA timezone."""

    def __init__(self, timezone: str = "America/Sao_Paulo"):
        self.timezone = timezone

    def now(self) -> DateTime:
        return pendulum.now(self.timezone)


class FixedClock:
    """Clock frozen at a given moment, for tests and replays."""

    def __init__(self, moment: DateTime):
        self._moment = moment

    @property
    def timezone(self) -> str:
        return self._moment.timezone_name

    def now(self) -> DateTime:
        return self._moment

    def advance(self, **kwargs) -> None:
        """Move the clock forward, e.g. ``advance(minutes=30)``."""
        self._moment = self._moment.add(**kwargs)
