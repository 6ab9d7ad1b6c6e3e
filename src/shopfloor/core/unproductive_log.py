"""UnproductiveEventLog -- ordered cause intervals of one task

Append-only: open() adds an event, close() fills in end_time and duration of
the single open one. At most one event is open at any time.
"""

from datetime import datetime

from .exceptions import AlreadyOpenError, NoOpenEventError
from .models.unproductive import UnproductiveEvent
from .timekeeping import TimeAccumulator


class UnproductiveEventLog:
    """Wraps a task's event list in place

    The list is shared with the Task model, so mutations through the log are
    visible on the task without copying.
    """

    def __init__(self, events: list[UnproductiveEvent]) -> None:
        self._events = events

    @property
    def events(self) -> list[UnproductiveEvent]:
        return self._events

    def open(self, cause: str, observations: str, at: datetime) -> UnproductiveEvent:
        """Append a new open event

        Raises:
            AlreadyOpenError: an event is already open
        """
        current = self.open_event()
        if current is not None:
            raise AlreadyOpenError(current.cause)

        event = UnproductiveEvent(
            cause=cause,
            observations=observations,
            start_time=at,
        )
        self._events.append(event)
        return event

    def close(self, at: datetime) -> UnproductiveEvent:
        """Close the open event at the given instant

        Raises:
            NoOpenEventError: nothing is open
            InvalidIntervalError: at precedes the event start
        """
        event = self.open_event()
        if event is None:
            raise NoOpenEventError()

        # compute before mutating so a bad instant leaves the event open
        duration = TimeAccumulator.elapsed_since(event.start_time, at)
        event.end_time = at
        event.duration = duration
        return event

    def has_open_event(self) -> bool:
        return self.open_event() is not None

    def open_event(self) -> UnproductiveEvent | None:
        # newest first: the open one, if any, is always the last appended
        for event in reversed(self._events):
            if event.end_time is None:
                return event
        return None

    def total_unproductive_seconds(self) -> float:
        """Sum of closed durations; an open event contributes 0 until closed"""
        return sum(e.duration for e in self._events if e.end_time is not None)
