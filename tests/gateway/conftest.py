"""Gateway test setup -- app with stores and a manual clock set directly on app.state"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from shopfloor.core.clock import ManualClock
from shopfloor.core.store import StoreGroup, create_store_group
from shopfloor.gateway.config import GatewayConfig
from shopfloor.gateway.services.task_service import TaskService


@pytest_asyncio.fixture
async def store_group(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    group = await create_store_group(str(tmp_path / "sqlite" / "test.db"))
    yield group
    await group.conn.close()


@pytest_asyncio.fixture
async def service(store_group: StoreGroup, clock: ManualClock) -> TaskService:
    return TaskService(store_group, clock)


@pytest_asyncio.fixture
async def test_app(store_group: StoreGroup, clock: ManualClock):
    """FastAPI app with state initialised by hand (lifespan bypassed)"""
    from shopfloor.gateway.main import create_app

    app = create_app(GatewayConfig())
    app.state.store_group = store_group
    app.state.clock = clock
    return app


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac
