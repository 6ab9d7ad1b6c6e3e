"""Enumerations -- task lifecycle states, audit event types, actors

Includes the VALID_TRANSITIONS table and the TERMINAL_STATES set
the state machine checks every operation against.
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task lifecycle state"""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    UNPRODUCTIVE_PAUSED = "UNPRODUCTIVE_PAUSED"

    # terminal
    COMPLETED = "COMPLETED"


# Legal status changes. A paused task has to resume before it can finish.
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {TaskStatus.IN_PROGRESS},
    TaskStatus.IN_PROGRESS: {
        TaskStatus.UNPRODUCTIVE_PAUSED,
        TaskStatus.COMPLETED,
    },
    TaskStatus.UNPRODUCTIVE_PAUSED: {TaskStatus.IN_PROGRESS},
    TaskStatus.COMPLETED: set(),
}

TERMINAL_STATES: set[TaskStatus] = {
    TaskStatus.COMPLETED,
}


class EventType(StrEnum):
    """Audit event type, one per state machine operation"""

    TASK_CREATED = "TASK_CREATED"
    TASK_STARTED = "TASK_STARTED"
    UNPRODUCTIVE_CAUSE_RECORDED = "UNPRODUCTIVE_CAUSE_RECORDED"
    TASK_RESUMED = "TASK_RESUMED"
    TASK_FINISHED = "TASK_FINISHED"


class ActorType(StrEnum):
    """Who triggered an event"""

    OPERATOR = "operator"
    SUPERVISOR = "supervisor"
    SYSTEM = "system"


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """Check whether a status change is legal

    Args:
        from_status: current status
        to_status: requested status

    Returns:
        True if the change is allowed, otherwise False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
