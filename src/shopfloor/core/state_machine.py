"""TaskStateMachine -- lifecycle transitions and time bookkeeping of one task

PENDING -> IN_PROGRESS -> COMPLETED, with IN_PROGRESS <-> UNPRODUCTIVE_PAUSED
as a detour. Exactly one clock can tick at a time: either running_since is set
(productive) or one unproductive event is open (paused), never both, and
neither outside those two states.

Every operation takes the current instant from the caller and validates
everything before touching the task, so a rejected call leaves it unchanged.
"""

from datetime import datetime

from .exceptions import EventLogIntegrityError, IllegalTransitionError, NoOpenEventError
from .models.enums import TaskStatus, validate_transition
from .models.task import Task
from .models.unproductive import UnproductiveEvent
from .timekeeping import TimeAccumulator
from .unproductive_log import UnproductiveEventLog


class TaskStateMachine:
    """Owns the status of a Task and mutates it in place"""

    def __init__(self, task: Task) -> None:
        self._task = task
        self._log = UnproductiveEventLog(task.unproductive_events)

    @property
    def task(self) -> Task:
        return self._task

    @property
    def status(self) -> TaskStatus:
        return self._task.status

    @property
    def event_log(self) -> UnproductiveEventLog:
        return self._log

    def start(self, at: datetime) -> None:
        """PENDING -> IN_PROGRESS, the productive clock starts at `at`"""
        self._require("start", TaskStatus.PENDING, TaskStatus.IN_PROGRESS)

        self._task.status = TaskStatus.IN_PROGRESS
        self._task.running_since = at
        self.check_invariants()

    def record_unproductive_cause(
        self,
        cause: str,
        observations: str,
        at: datetime,
    ) -> UnproductiveEvent:
        """IN_PROGRESS -> UNPRODUCTIVE_PAUSED

        Banks the running interval into productive_seconds and opens a cause
        interval starting at the same instant.
        """
        self._require(
            "record an unproductive cause for",
            TaskStatus.IN_PROGRESS,
            TaskStatus.UNPRODUCTIVE_PAUSED,
        )
        running_since = self._running_since()
        new_total = TimeAccumulator.accumulate(
            self._task.productive_seconds, running_since, at
        )

        event = self._log.open(cause, observations, at)
        self._task.productive_seconds = new_total
        self._task.running_since = None
        self._task.status = TaskStatus.UNPRODUCTIVE_PAUSED
        self.check_invariants()
        return event

    def resume_from_unproductive(self, at: datetime) -> UnproductiveEvent:
        """UNPRODUCTIVE_PAUSED -> IN_PROGRESS

        Closes the open cause interval and restarts the productive clock.

        Raises:
            NoOpenEventError: paused without an open event (corrupt log)
        """
        self._require("resume", TaskStatus.UNPRODUCTIVE_PAUSED, TaskStatus.IN_PROGRESS)

        event = self._log.close(at)
        self._task.status = TaskStatus.IN_PROGRESS
        self._task.running_since = at
        self.check_invariants()
        return event

    def finish(self, at: datetime) -> None:
        """IN_PROGRESS -> COMPLETED, banking the running interval"""
        self._require("finish", TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED)

        new_total = self._task.productive_seconds
        if self._task.running_since is not None:
            new_total = TimeAccumulator.accumulate(
                new_total, self._task.running_since, at
            )

        self._task.productive_seconds = new_total
        self._task.running_since = None
        self._task.status = TaskStatus.COMPLETED
        self.check_invariants()

    def current_productive_seconds(self, now: datetime) -> float:
        """Banked seconds plus the live running interval, if any"""
        total = self._task.productive_seconds
        if self._task.status == TaskStatus.IN_PROGRESS:
            total += TimeAccumulator.elapsed_since(self._running_since(), now)
        return total

    def current_open_cause_seconds(self, now: datetime) -> float | None:
        """Live duration of the open cause interval, None unless paused"""
        if self._task.status != TaskStatus.UNPRODUCTIVE_PAUSED:
            return None
        event = self._log.open_event()
        if event is None:
            raise NoOpenEventError()
        return TimeAccumulator.elapsed_since(event.start_time, now)

    def check_invariants(self) -> None:
        """Verify the two-clock invariants against the current status

        Raises:
            EventLogIntegrityError: the task state is inconsistent
        """
        status = self._task.status
        running = self._task.running_since is not None
        open_count = sum(1 for e in self._task.unproductive_events if e.end_time is None)

        if open_count > 1:
            raise EventLogIntegrityError(
                f"Task {self._task.task_id} has {open_count} open unproductive events"
            )
        if running and open_count:
            raise EventLogIntegrityError(
                f"Task {self._task.task_id} is running with an open unproductive event"
            )
        if running != (status == TaskStatus.IN_PROGRESS):
            raise EventLogIntegrityError(
                f"Task {self._task.task_id} in status {status} has running_since={self._task.running_since}"
            )
        if bool(open_count) != (status == TaskStatus.UNPRODUCTIVE_PAUSED):
            raise EventLogIntegrityError(
                f"Task {self._task.task_id} in status {status} has {open_count} open unproductive events"
            )

    def _require(
        self, operation: str, from_status: TaskStatus, to_status: TaskStatus
    ) -> None:
        # start and resume share a target status, so the source is checked too
        current = self._task.status
        if current != from_status or not validate_transition(current, to_status):
            raise IllegalTransitionError(operation, current)

    def _running_since(self) -> datetime:
        if self._task.running_since is None:
            raise EventLogIntegrityError(
                f"Task {self._task.task_id} is IN_PROGRESS without running_since"
            )
        return self._task.running_since
