"""Shopfloor Core Domain Models -- public exports

Import every public model type from here.
"""

from .downtime import DowntimeCategory, DowntimeReason
from .enums import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    ActorType,
    EventType,
    TaskStatus,
    validate_transition,
)
from .event import Event
from .payloads import (
    StateTransitionPayload,
    TaskCreatedPayload,
    TaskFinishedPayload,
    TaskResumedPayload,
    UnproductiveCauseRecordedPayload,
)
from .task import ClosureData, Task, TaskAttributes
from .unproductive import UnproductiveEvent

__all__ = [
    # enums
    "TaskStatus",
    "EventType",
    "ActorType",
    # state machine table
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "validate_transition",
    # Task
    "Task",
    "TaskAttributes",
    "ClosureData",
    "UnproductiveEvent",
    # Event
    "Event",
    # Payloads
    "TaskCreatedPayload",
    "StateTransitionPayload",
    "UnproductiveCauseRecordedPayload",
    "TaskResumedPayload",
    "TaskFinishedPayload",
    # Downtime taxonomy
    "DowntimeCategory",
    "DowntimeReason",
]
