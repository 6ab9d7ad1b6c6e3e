"""Event payload types

Each payload carries the inputs of the operation that produced it, so replaying
the events through the state machine reproduces the task row.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import TaskStatus


class TaskCreatedPayload(BaseModel):
    """TASK_CREATED event payload"""

    task_code: str
    attributes: dict[str, Any] = Field(default_factory=dict)


class StateTransitionPayload(BaseModel):
    """Common part of every lifecycle event payload"""

    from_status: TaskStatus
    to_status: TaskStatus
    at: datetime = Field(description="Instant supplied to the state machine")
    reason: str = Field(default="")


class UnproductiveCauseRecordedPayload(StateTransitionPayload):
    """UNPRODUCTIVE_CAUSE_RECORDED event payload"""

    cause: str
    observations: str = ""
    productive_seconds: float = Field(description="Banked total after closing the interval")


class TaskResumedPayload(StateTransitionPayload):
    """TASK_RESUMED event payload"""

    cause: str
    cause_duration: float = Field(description="Duration of the closed cause interval")


class TaskFinishedPayload(StateTransitionPayload):
    """TASK_FINISHED event payload"""

    productive_seconds: float
    closure: dict[str, Any] = Field(default_factory=dict)
