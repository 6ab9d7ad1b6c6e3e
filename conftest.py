"""Global pytest setup -- temporary SQLite databases and a manual clock"""

from collections.abc import AsyncGenerator
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio
from shopfloor.core.clock import ManualClock


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """Temporary SQLite database path"""
    return tmp_path / "test.db"


@pytest_asyncio.fixture
async def db_conn(tmp_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """Initialised temporary SQLite connection"""
    from shopfloor.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(tmp_db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest.fixture
def clock() -> ManualClock:
    """Clock pinned at 2025-01-01 08:00 UTC"""
    return ManualClock()
