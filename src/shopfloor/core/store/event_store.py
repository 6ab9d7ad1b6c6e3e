"""EventStore SQLite implementation

The events table is append-only: inserts only, no updates or deletes.
task_seq increases strictly within a task.
"""

import json
from datetime import datetime

import aiosqlite

from ..models.enums import ActorType, EventType
from ..models.event import Event

_EVENT_COLUMNS = (
    "event_id, task_id, task_seq, ts, type, schema_version, actor, payload, trace_id"
)


class SqliteEventStore:
    """EventStore backed by SQLite"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_event(self, event: Event) -> None:
        """Append an event

        Does not commit; the caller owns the transaction.
        """
        await self._conn.execute(
            f"""
            INSERT INTO events ({_EVENT_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.event_id,
                event.task_id,
                event.task_seq,
                event.ts.isoformat(),
                event.type.value,
                event.schema_version,
                event.actor.value,
                json.dumps(event.payload, ensure_ascii=False),
                event.trace_id,
            ),
        )

    async def get_events_for_task(self, task_id: str) -> list[Event]:
        """All events of a task (by persistent_id), in task_seq order"""
        cursor = await self._conn.execute(
            f"SELECT {_EVENT_COLUMNS} FROM events WHERE task_id = ? ORDER BY task_seq ASC",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def get_next_task_seq(self, task_id: str) -> int:
        """Next task_seq for a task (MAX+1)

        Call inside the per-task lock so the value stays valid until the insert.
        """
        cursor = await self._conn.execute(
            "SELECT COALESCE(MAX(task_seq), 0) FROM events WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        return (row[0] if row else 0) + 1

    async def get_all_events(self) -> list[Event]:
        """Every event ordered by task and task_seq (projection rebuild)"""
        cursor = await self._conn.execute(
            f"SELECT {_EVENT_COLUMNS} FROM events ORDER BY task_id, task_seq ASC"
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> Event:
        """Turn an events row into an Event model"""
        payload = json.loads(row[7]) if row[7] else {}
        return Event(
            event_id=row[0],
            task_id=row[1],
            task_seq=row[2],
            ts=datetime.fromisoformat(row[3]),
            type=EventType(row[4]),
            schema_version=row[5],
            actor=ActorType(row[6]),
            payload=payload,
            trace_id=row[8],
        )
