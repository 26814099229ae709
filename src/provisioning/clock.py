"""Wall-clock abstraction used by grace periods and the decrement safeguard."""

from datetime import datetime, timedelta, timezone
from typing import Protocol

from .models import parse_timestamp


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Current UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at a given instant; advance() moves it forward."""

    def __init__(self, at):
        self._now = parse_timestamp(at)

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs) -> None:
        self._now = self._now + timedelta(**kwargs)
