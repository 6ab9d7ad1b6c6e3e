"""Shopfloor Core Store -- SQLite persistence

Factory creating a group of stores that share one database connection.
"""

from pathlib import Path

import aiosqlite

from .downtime_store import SqliteDowntimeStore
from .event_store import SqliteEventStore
from .sqlite_init import init_db
from .task_store import SqliteTaskStore
from .transaction import create_task_with_initial_event, save_task_and_append_event


class StoreGroup:
    """Store instances sharing one connection"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.task_store = SqliteTaskStore(conn)
        self.event_store = SqliteEventStore(conn)
        self.downtime_store = SqliteDowntimeStore(conn)


async def create_store_group(db_path: str) -> StoreGroup:
    """Open the database and build the store group

    Args:
        db_path: SQLite database file path

    Returns:
        StoreGroup instance
    """
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteTaskStore",
    "SqliteEventStore",
    "SqliteDowntimeStore",
    "init_db",
    "create_task_with_initial_event",
    "save_task_and_append_event",
]
