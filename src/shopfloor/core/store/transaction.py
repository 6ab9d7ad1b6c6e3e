"""Task row + audit event atomic transactions

The task write and its audit event commit together or not at all; a failed
commit leaves the stored task exactly as it was.
"""

import aiosqlite

from ..models.event import Event
from ..models.task import Task
from .protocols import EventStore, TaskStore


async def create_task_with_initial_event(
    conn: aiosqlite.Connection,
    task_store: TaskStore,
    event_store: EventStore,
    task: Task,
    event: Event,
) -> None:
    """Insert a new task and its TASK_CREATED event in one transaction

    Raises:
        Exception: anything raised by the writes, after rolling back
    """
    try:
        await task_store.create_task(task)
        await event_store.append_event(event)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def save_task_and_append_event(
    conn: aiosqlite.Connection,
    task_store: TaskStore,
    event_store: EventStore,
    task: Task,
    event: Event,
) -> None:
    """Persist a transitioned task and its audit event atomically

    Args:
        conn: connection shared by both stores
        task_store: TaskStore instance
        event_store: EventStore instance
        task: task mutated by the state machine, still carrying its loaded version
        event: audit event describing the transition

    Raises:
        TaskConflictError: the task changed since it was loaded
        Exception: any other write failure, after rolling back
    """
    try:
        await task_store.save_task(task)
        await event_store.append_event(event)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise

    task.version += 1
