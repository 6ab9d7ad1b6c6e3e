"""Event Domain Model -- audit log entry

The events table is append-only: no updates, no deletes.
event_id is a ULID (time ordered); task_seq increases strictly within a task.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import ActorType, EventType


class Event(BaseModel):
    """Event data model

    task_id is the task's persistent_id, not the human-facing code, so the log
    survives a code being reissued.
    """

    event_id: str = Field(description="Unique id, ULID, time ordered")
    task_id: str = Field(description="persistent_id of the task")
    task_seq: int = Field(description="Sequence within the task, strictly increasing")
    ts: datetime = Field(description="Event timestamp")
    type: EventType = Field(description="Event type")
    schema_version: int = Field(default=1, description="Payload schema version")
    actor: ActorType = Field(description="Who triggered it")
    payload: dict[str, Any] = Field(default_factory=dict, description="Structured payload")
    trace_id: str = Field(default="", description="Shared by all events of a task")
