"""Projection rebuild -- reconstruct tasks from the audit event log

Every lifecycle event stores the inputs of the operation that produced it, so
replaying them through TaskStateMachine yields the same status, productive
total and unproductive intervals as the live rows.
"""

import time

import aiosqlite
import structlog

from .models.enums import EventType
from .models.event import Event
from .models.payloads import (
    StateTransitionPayload,
    TaskCreatedPayload,
    TaskFinishedPayload,
    UnproductiveCauseRecordedPayload,
)
from .models.task import ClosureData, Task, TaskAttributes
from .state_machine import TaskStateMachine
from .store.event_store import SqliteEventStore
from .store.task_store import SqliteTaskStore

log = structlog.get_logger()


def apply_event(tasks: dict[str, Task], event: Event) -> None:
    """Apply one event to the in-memory task map

    Args:
        tasks: persistent_id -> Task (mutated in place)
        event: event to apply

    Raises:
        IllegalTransitionError: the log contains an impossible sequence
    """
    if event.type == EventType.TASK_CREATED:
        payload = TaskCreatedPayload.model_validate(event.payload)
        tasks[event.task_id] = Task(
            task_id=payload.task_code,
            persistent_id=event.task_id,
            attributes=TaskAttributes(**payload.attributes),
            created_at=event.ts,
            updated_at=event.ts,
        )
        return

    task = tasks.get(event.task_id)
    if task is None:
        log.warning(
            "projection_event_without_task",
            task_id=event.task_id,
            event_id=event.event_id,
        )
        return

    machine = TaskStateMachine(task)
    if event.type == EventType.TASK_STARTED:
        machine.start(StateTransitionPayload.model_validate(event.payload).at)
    elif event.type == EventType.UNPRODUCTIVE_CAUSE_RECORDED:
        recorded = UnproductiveCauseRecordedPayload.model_validate(event.payload)
        machine.record_unproductive_cause(
            recorded.cause, recorded.observations, recorded.at
        )
    elif event.type == EventType.TASK_RESUMED:
        machine.resume_from_unproductive(
            StateTransitionPayload.model_validate(event.payload).at
        )
    elif event.type == EventType.TASK_FINISHED:
        finished = TaskFinishedPayload.model_validate(event.payload)
        machine.finish(finished.at)
        task.closure = ClosureData(**finished.closure) if finished.closure else None

    task.updated_at = event.ts
    task.version += 1


def replay_events(events: list[Event]) -> dict[str, Task]:
    """Fold an ordered event list into tasks keyed by persistent_id"""
    tasks: dict[str, Task] = {}
    for event in events:
        apply_event(tasks, event)
    return tasks


async def rebuild_all(
    conn: aiosqlite.Connection,
    event_store: SqliteEventStore,
    task_store: SqliteTaskStore,
) -> int:
    """Rebuild the tasks and unproductive_events tables from events

    Steps:
    1. read every event (ordered by task_id, task_seq)
    2. replay them in memory
    3. clear tasks and unproductive_events
    4. write the rebuilt tasks

    Returns:
        number of events processed
    """
    start_time = time.monotonic()

    events = await event_store.get_all_events()
    event_count = len(events)

    await log.ainfo(
        "projection_rebuild_started",
        event_count=event_count,
    )

    tasks = replay_events(events)

    # events reference tasks; foreign keys are off while the rows are replaced
    await conn.execute("PRAGMA foreign_keys = OFF")
    try:
        await conn.execute("DELETE FROM unproductive_events")
        await conn.execute("DELETE FROM tasks")
        for task in tasks.values():
            await task_store.create_task(task)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    finally:
        await conn.execute("PRAGMA foreign_keys = ON")

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    await log.ainfo(
        "projection_rebuild_completed",
        event_count=event_count,
        task_count=len(tasks),
        elapsed_ms=elapsed_ms,
    )

    return event_count
