"""Task Domain Model

The tasks table holds the current state of every task. Every change is also
appended to the events table so the row can be rebuilt from the audit log.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import TaskStatus
from .unproductive import UnproductiveEvent


class TaskAttributes(BaseModel):
    """Identifying attributes, owned by the reference-data collaborators"""

    part_ref: str = Field(default="", description="Product / part reference")
    operation: str = Field(default="", description="Product operation name")
    work_center: str = Field(default="", description="Machine or work center")
    quantity: int = Field(default=0, ge=0, description="Required quantity")
    operator: str = Field(default="", description="Assigned operator")
    production_order_number: str = Field(default="", description="Production order reference")


class ClosureData(BaseModel):
    """Completion metadata recorded on finish

    Opaque to the state machine: stored with the task, never validated against
    the time figures.
    """

    pieces_started: int = Field(default=0, ge=0)
    pieces_finished: int = Field(default=0, ge=0)
    order_finished: bool = Field(default=False)
    non_conformance: str = Field(default="", description="Non-conforming product notes")


class Task(BaseModel):
    """Task data model

    task_id is the human-facing code (MO20250101-001); persistent_id is the
    internal ULID identity the store keys on.
    """

    task_id: str = Field(description="Human-facing task code, unique")
    persistent_id: str = Field(description="Internal identity, ULID")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Lifecycle state")
    productive_seconds: float = Field(
        default=0.0,
        ge=0,
        description="Productive time banked from closed running intervals",
    )
    running_since: datetime | None = Field(
        default=None,
        description="Start of the current productive interval, set iff IN_PROGRESS",
    )
    unproductive_events: list[UnproductiveEvent] = Field(
        default_factory=list,
        description="Cause intervals in chronological order",
    )
    attributes: TaskAttributes = Field(default_factory=TaskAttributes)
    closure: ClosureData | None = Field(default=None, description="Set on completion")
    version: int = Field(default=0, description="Optimistic concurrency counter")
    created_at: datetime = Field(description="Creation time")
    updated_at: datetime = Field(description="Last change time")
