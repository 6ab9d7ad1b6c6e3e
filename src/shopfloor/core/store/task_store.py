"""TaskStore SQLite implementation

Current state of every task plus its unproductive event rows. Writes never
commit on their own; transaction.py wraps them with the audit event.
"""

import json
from datetime import datetime

import aiosqlite

from ..exceptions import TaskConflictError, TaskNotFoundError
from ..models.enums import TaskStatus
from ..models.task import ClosureData, Task, TaskAttributes
from ..models.unproductive import UnproductiveEvent

_TASK_COLUMNS = (
    "persistent_id, task_code, status, productive_seconds, running_since, "
    "attributes, closure, version, created_at, updated_at"
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SqliteTaskStore:
    """TaskStore backed by SQLite"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """Insert a new task row (and any unproductive events it already carries)"""
        await self._conn.execute(
            f"""
            INSERT INTO tasks ({_TASK_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.persistent_id,
                task.task_id,
                task.status.value,
                task.productive_seconds,
                _iso(task.running_since),
                task.attributes.model_dump_json(),
                task.closure.model_dump_json() if task.closure else None,
                task.version,
                task.created_at.isoformat(),
                task.updated_at.isoformat(),
            ),
        )
        await self._write_unproductive_events(task)

    async def get_task(self, task_id: str) -> Task | None:
        """Look a task up by its human-facing code"""
        cursor = await self._conn.execute(
            f"SELECT {_TASK_COLUMNS} FROM tasks WHERE task_code = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return await self._row_to_task(row)

    async def get_task_by_persistent_id(self, persistent_id: str) -> Task | None:
        cursor = await self._conn.execute(
            f"SELECT {_TASK_COLUMNS} FROM tasks WHERE persistent_id = ?",
            (persistent_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return await self._row_to_task(row)

    async def load_task(self, task_id: str) -> Task:
        """Like get_task but raises when missing

        Raises:
            TaskNotFoundError: no task with this code
        """
        task = await self.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def list_tasks(self, status: str | None = None) -> list[Task]:
        """List tasks, optionally filtered by status, newest first"""
        if status:
            cursor = await self._conn.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks WHERE status = ? ORDER BY created_at DESC",
                (status,),
            )
        else:
            cursor = await self._conn.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks ORDER BY created_at DESC"
            )
        rows = await cursor.fetchall()
        return [await self._row_to_task(row) for row in rows]

    async def save_task(self, task: Task) -> None:
        """Compare-and-swap write of a task loaded at task.version

        The stored version is bumped by one; the caller updates the model
        after the surrounding transaction commits.

        Raises:
            TaskConflictError: the stored version no longer matches
        """
        cursor = await self._conn.execute(
            """
            UPDATE tasks
            SET status = ?, productive_seconds = ?, running_since = ?,
                attributes = ?, closure = ?, version = version + 1, updated_at = ?
            WHERE persistent_id = ? AND version = ?
            """,
            (
                task.status.value,
                task.productive_seconds,
                _iso(task.running_since),
                task.attributes.model_dump_json(),
                task.closure.model_dump_json() if task.closure else None,
                task.updated_at.isoformat(),
                task.persistent_id,
                task.version,
            ),
        )
        if cursor.rowcount == 0:
            raise TaskConflictError(task.task_id, task.version)
        await self._write_unproductive_events(task)

    async def get_unproductive_events(self, persistent_id: str) -> list[UnproductiveEvent]:
        """Cause intervals of a task in chronological order"""
        cursor = await self._conn.execute(
            """
            SELECT cause, observations, start_time, end_time, duration
            FROM unproductive_events WHERE task_id = ? ORDER BY seq ASC
            """,
            (persistent_id,),
        )
        rows = await cursor.fetchall()
        return [
            UnproductiveEvent(
                cause=row[0],
                observations=row[1],
                start_time=datetime.fromisoformat(row[2]),
                end_time=_parse(row[3]),
                duration=row[4],
            )
            for row in rows
        ]

    async def list_task_codes_with_prefix(self, prefix: str) -> list[str]:
        """Task codes starting with prefix (used to number new codes)"""
        cursor = await self._conn.execute(
            "SELECT task_code FROM tasks WHERE substr(task_code, 1, ?) = ?",
            (len(prefix), prefix),
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def _write_unproductive_events(self, task: Task) -> None:
        # Upsert by position. A row that is already closed is never rewritten,
        # rows are never deleted.
        for seq, event in enumerate(task.unproductive_events, start=1):
            await self._conn.execute(
                """
                INSERT INTO unproductive_events
                    (task_id, seq, cause, observations, start_time, end_time, duration)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (task_id, seq) DO UPDATE
                SET end_time = excluded.end_time, duration = excluded.duration
                WHERE unproductive_events.end_time IS NULL
                """,
                (
                    task.persistent_id,
                    seq,
                    event.cause,
                    event.observations,
                    event.start_time.isoformat(),
                    _iso(event.end_time),
                    event.duration,
                ),
            )

    async def _row_to_task(self, row: aiosqlite.Row) -> Task:
        """Turn a tasks row into a Task model"""
        attributes_data = json.loads(row[5]) if row[5] else {}
        closure_data = json.loads(row[6]) if row[6] else None
        return Task(
            persistent_id=row[0],
            task_id=row[1],
            status=TaskStatus(row[2]),
            productive_seconds=row[3],
            running_since=_parse(row[4]),
            attributes=TaskAttributes(**attributes_data),
            closure=ClosureData(**closure_data) if closure_data is not None else None,
            version=row[7],
            created_at=datetime.fromisoformat(row[8]),
            updated_at=datetime.fromisoformat(row[9]),
            unproductive_events=await self.get_unproductive_events(row[0]),
        )
