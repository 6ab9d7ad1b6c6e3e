"""Store Protocol interfaces

Abstract TaskStore, EventStore and DowntimeReasonStore using Protocol
(structural subtyping).
"""

from typing import Protocol

from ..models.downtime import DowntimeReason
from ..models.event import Event
from ..models.task import Task


class TaskStore(Protocol):
    """Task storage interface"""

    async def create_task(self, task: Task) -> None:
        """Insert a task"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """Look up by human-facing code"""
        ...

    async def load_task(self, task_id: str) -> Task:
        """Look up by code, raising TaskNotFoundError when missing"""
        ...

    async def list_tasks(self, status: str | None = None) -> list[Task]:
        """List tasks, optionally filtered by status"""
        ...

    async def save_task(self, task: Task) -> None:
        """Compare-and-swap write, raising TaskConflictError on version mismatch"""
        ...


class EventStore(Protocol):
    """Audit event storage interface

    Append-only: inserts only, no updates or deletes.
    """

    async def append_event(self, event: Event) -> None:
        """Append an event"""
        ...

    async def get_events_for_task(self, task_id: str) -> list[Event]:
        """Events of a task in task_seq order"""
        ...

    async def get_next_task_seq(self, task_id: str) -> int:
        """Next task_seq (MAX+1)"""
        ...


class DowntimeReasonStore(Protocol):
    """Cause taxonomy provider interface"""

    async def list_reasons(self, active_only: bool = True) -> list[DowntimeReason]:
        """Reasons sorted by category then name"""
        ...
