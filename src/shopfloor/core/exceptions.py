"""Task tracking exception hierarchy

Transition errors are recoverable by the caller picking a valid operation.
Event log integrity errors mean a bug elsewhere and must not be corrected silently.
"""

from datetime import datetime

from .models.enums import TaskStatus


class TaskTrackingError(Exception):
    """Base exception for the tracking core"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: error description
            recoverable: whether the caller can recover by issuing another request
        """
        super().__init__(message)
        self.recoverable = recoverable


class IllegalTransitionError(TaskTrackingError):
    """Operation invoked from a state that does not permit it

    Carries the actual current status so clients can resynchronise
    (e.g. another operator already finished the task).
    """

    def __init__(self, operation: str, current_status: TaskStatus) -> None:
        super().__init__(
            f"Cannot {operation} a task in status {current_status}",
            recoverable=True,
        )
        self.operation = operation
        self.current_status = current_status


class InvalidIntervalError(TaskTrackingError):
    """The supplied instant precedes the recorded start (clock skew)"""

    def __init__(self, start: datetime, now: datetime) -> None:
        super().__init__(
            f"Instant {now.isoformat()} precedes interval start {start.isoformat()}",
            recoverable=True,
        )
        self.start = start
        self.now = now


class EventLogIntegrityError(TaskTrackingError):
    """The unproductive event log contradicts the task state"""

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=False)


class AlreadyOpenError(EventLogIntegrityError):
    """An unproductive event is already open"""

    def __init__(self, cause: str) -> None:
        super().__init__(f"Unproductive event already open: {cause}")
        self.cause = cause


class NoOpenEventError(EventLogIntegrityError):
    """No unproductive event is open"""

    def __init__(self) -> None:
        super().__init__("No open unproductive event to close")


class TaskNotFoundError(TaskTrackingError):
    """No task with this id"""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id {task_id} does not exist")
        self.task_id = task_id


class TaskConflictError(TaskTrackingError):
    """Another writer changed the task since it was loaded"""

    def __init__(self, task_id: str, expected_version: int | None = None) -> None:
        message = f"Task {task_id} was modified concurrently"
        if expected_version is not None:
            message += f" (expected version {expected_version})"
        super().__init__(message)
        self.task_id = task_id
        self.expected_version = expected_version


class TaskCodeExistsError(TaskTrackingError):
    """The generated or supplied task code is already taken"""

    def __init__(self, task_code: str) -> None:
        super().__init__(f"Task code {task_code} already exists")
        self.task_code = task_code
