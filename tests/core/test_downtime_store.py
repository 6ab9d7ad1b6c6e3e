"""Downtime cause taxonomy store tests"""

import pytest_asyncio
from shopfloor.core.store.downtime_store import DEFAULT_DOWNTIME_REASONS, SqliteDowntimeStore


@pytest_asyncio.fixture
async def downtime_store(db_conn) -> SqliteDowntimeStore:
    return SqliteDowntimeStore(db_conn)


class TestDowntimeStore:
    async def test_seed_is_idempotent(self, downtime_store):
        expected = sum(len(reasons) for reasons in DEFAULT_DOWNTIME_REASONS.values())

        assert await downtime_store.seed_defaults() == expected
        assert await downtime_store.seed_defaults() == 0

        reasons = await downtime_store.list_reasons()
        assert len(reasons) == expected
        categories = await downtime_store.list_categories()
        assert {c.name for c in categories} == set(DEFAULT_DOWNTIME_REASONS)

    async def test_sorted_by_category_then_name(self, downtime_store):
        await downtime_store.seed_defaults()
        reasons = await downtime_store.list_reasons()

        keys = [(r.category, r.name) for r in reasons]
        assert keys == sorted(keys)

    async def test_inactive_reasons_hidden_by_default(self, downtime_store, db_conn):
        category = await downtime_store.add_category("Calidad")
        await downtime_store.add_reason("CA-01", category.id, "Inspección")
        await downtime_store.add_reason("CA-02", category.id, "Retrabajo", is_active=False)
        await db_conn.commit()

        active = await downtime_store.list_reasons()
        assert [r.code for r in active] == ["CA-01"]
        assert active[0].category == "Calidad"

        everything = await downtime_store.list_reasons(active_only=False)
        assert {r.code for r in everything} == {"CA-01", "CA-02"}
        assert next(r for r in everything if r.code == "CA-02").is_active is False
