"""Clock -- injected time source

The state machine never reads the wall clock; the service asks its Clock and
passes the instant down.
"""

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Time source interface"""

    def now(self) -> datetime:
        """Current instant, timezone-aware"""
        ...


class SystemClock:
    """Wall clock in UTC"""

    def now(self) -> datetime:
        return datetime.now(UTC)


class ManualClock:
    """Clock that only moves when told to, for tests and replays"""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2025, 1, 1, 8, 0, tzinfo=UTC)

    def now(self) -> datetime:
        return self._now

    def set(self, instant: datetime) -> None:
        self._now = instant

    def advance(self, seconds: float) -> datetime:
        self._now = self._now + timedelta(seconds=seconds)
        return self._now
