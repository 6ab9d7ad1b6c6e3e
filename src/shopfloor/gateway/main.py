"""FastAPI application

app creation + lifespan: database open/close, optional taxonomy seeding,
clock, router registration.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from shopfloor.core.clock import SystemClock
from shopfloor.core.config import get_db_path
from shopfloor.core.store import create_store_group

from .config import GatewayConfig, load_gateway_config
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import downtime, health, status, tasks

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database at startup, close it at shutdown"""
    config: GatewayConfig = app.state.config

    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    app.state.store_group = store_group
    app.state.clock = SystemClock()

    if config.seed_downtime_reasons:
        await store_group.downtime_store.seed_defaults()

    log.info("gateway_started", db_path=db_path)

    yield

    if hasattr(app.state, "store_group") and app.state.store_group:
        await app.state.store_group.conn.close()


def create_app(config: GatewayConfig | None = None) -> FastAPI:
    """Create the FastAPI application"""
    config = config or load_gateway_config()

    app = FastAPI(
        title="Shopfloor Gateway",
        version="0.1.0",
        description="Manufacturing task time tracking API",
        lifespan=lifespan,
    )
    app.state.config = config

    # registration order: Trace first, Logging wraps it
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging(config)
    setup_logfire(app, config)

    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(status.router, tags=["tasks"])
    app.include_router(downtime.router, tags=["downtime"])
    app.include_router(health.router, tags=["health"])

    return app


# uvicorn entry
app = create_app()
