"""Health endpoints and request/trace middleware tests"""

import pytest
from httpx import AsyncClient
from shopfloor.gateway.config import GatewayConfig, load_gateway_config
from shopfloor.gateway.middleware.trace_mw import extract_task_code


class TestHealth:
    async def test_health(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_ready(self, client: AsyncClient):
        resp = await client.get("/ready")
        assert resp.status_code == 200
        assert resp.json()["checks"]["sqlite"] == "ok"

    async def test_ready_after_db_closed(self, client: AsyncClient, store_group):
        await store_group.conn.close()
        resp = await client.get("/ready")
        assert resp.status_code == 503
        assert resp.json()["status"] == "not_ready"


class TestMiddleware:
    async def test_request_id_header(self, client: AsyncClient):
        resp = await client.get("/health")
        assert len(resp.headers["X-Request-ID"]) == 26

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/api/tasks/MO20250101-001", "MO20250101-001"),
            ("/api/tasks/OT20250315-042/status", "OT20250315-042"),
            ("/api/tasks", None),
            ("/api/tasks/not-a-code", None),
            ("/health", None),
        ],
    )
    def test_extract_task_code(self, path, expected):
        assert extract_task_code(path) == expected


class TestGatewayConfig:
    def test_defaults(self, monkeypatch):
        for name in (
            "SHOPFLOOR_LOG_FORMAT",
            "SHOPFLOOR_LOG_LEVEL",
            "SHOPFLOOR_SEED_DOWNTIME_REASONS",
            "LOGFIRE_SEND_TO_LOGFIRE",
            "SHOPFLOOR_HOST",
            "SHOPFLOOR_PORT",
        ):
            monkeypatch.delenv(name, raising=False)
        assert load_gateway_config() == GatewayConfig()

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SHOPFLOOR_LOG_FORMAT", "json")
        monkeypatch.setenv("SHOPFLOOR_LOG_LEVEL", "debug")
        monkeypatch.setenv("SHOPFLOOR_SEED_DOWNTIME_REASONS", "true")
        monkeypatch.setenv("SHOPFLOOR_PORT", "8080")

        config = load_gateway_config()
        assert config.log_format == "json"
        assert config.log_level == "DEBUG"
        assert config.seed_downtime_reasons is True
        assert config.port == 8080

    def test_invalid_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("SHOPFLOOR_LOG_FORMAT", "xml")
        monkeypatch.setenv("SHOPFLOOR_PORT", "not-a-port")

        config = load_gateway_config()
        assert config.log_format == "dev"
        assert config.port == 3001

    @pytest.mark.parametrize("value", ["70000", "0", "-1"])
    def test_out_of_range_port_falls_back(self, monkeypatch, value):
        monkeypatch.setenv("SHOPFLOOR_PORT", value)
        assert load_gateway_config().port == 3001
