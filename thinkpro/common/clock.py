"""
Time source abstraction.

Every window and expiry check reads "now" through a Clock so the attempt
state machine can be driven deterministically in tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and normalise aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock(ABC):
    """Source of the current time."""

    @abstractmethod
    def now(self) -> datetime:
        pass


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return utcnow()


class FrozenClock(Clock):
    """
    A clock that only moves when told to.

    Args:
        start: Initial time; defaults to the current UTC time
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = ensure_utc(start) if start else utcnow()

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        self._now = ensure_utc(value)

    def advance(self, **kwargs) -> datetime:
        """Move forward by a ``timedelta(**kwargs)`` and return the new time."""
        self._now = self._now + timedelta(**kwargs)
        return self._now
