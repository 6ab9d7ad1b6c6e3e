"""End-to-end lifecycle over HTTP, through the real lifespan

Create -> start -> two pauses -> finish, then check the stored figures, the
audit trail and that a projection rebuild reproduces the same rows.
"""

from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from shopfloor.core.clock import ManualClock
from shopfloor.core.projection import rebuild_all
from shopfloor.gateway.config import GatewayConfig


@pytest_asyncio.fixture
async def live_app(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("SHOPFLOOR_DB_PATH", str(tmp_path / "sqlite" / "e2e.db"))

    from shopfloor.gateway.main import create_app

    app = create_app(GatewayConfig(seed_downtime_reasons=True))
    async with app.router.lifespan_context(app):
        # lifespan installs the wall clock; pin it for deterministic figures
        app.state.clock = ManualClock()
        yield app


@pytest_asyncio.fixture
async def live_client(live_app):
    async with AsyncClient(
        transport=ASGITransport(app=live_app),
        base_url="http://test",
    ) as ac:
        yield ac


class TestLifecycleEndToEnd:
    async def test_two_pauses_then_finish(self, live_app, live_client: AsyncClient):
        clock: ManualClock = live_app.state.clock

        reasons = (await live_client.get("/api/downtime/reasons")).json()["categories"]
        cause = reasons[0]["reasons"][0]["name"]

        task_id = (await live_client.post("/api/tasks", json={"part_ref": "PZ-7"})).json()["task_id"]
        url = f"/api/tasks/{task_id}/status"

        await live_client.put(url, json={"state": "IN_PROGRESS"})
        clock.advance(600)
        await live_client.put(url, json={"state": "PAUSED", "cause": cause})
        clock.advance(120)
        await live_client.put(url, json={"state": "IN_PROGRESS"})
        clock.advance(900)
        await live_client.put(url, json={"state": "PAUSED", "cause": "Capacitación"})
        clock.advance(60)
        await live_client.put(url, json={"state": "IN_PROGRESS"})
        clock.advance(300)
        resp = await live_client.put(
            url, json={"state": "COMPLETED", "piecesStarted": 5, "piecesFinished": 5}
        )

        assert resp.status_code == 200
        task = resp.json()
        assert task["status"] == "COMPLETED"
        assert task["productive_seconds"] == 1800.0
        assert task["total_unproductive_seconds"] == 180.0
        assert [e["cause"] for e in task["unproductive_events"]] == [cause, "Capacitación"]

        detail = (await live_client.get(f"/api/tasks/{task_id}")).json()
        assert [e["task_seq"] for e in detail["events"]] == list(range(1, 8))

        stores = live_app.state.store_group
        before = await stores.task_store.load_task(task_id)
        await rebuild_all(stores.conn, stores.event_store, stores.task_store)
        after = await stores.task_store.load_task(task_id)
        assert after == before
