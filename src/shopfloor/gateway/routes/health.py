"""Health routes

GET /health: liveness, always 200.
GET /ready: readiness, 200 when SQLite answers, otherwise 503.
"""

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness check"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness check -- SQLite connectivity"""
    checks = {}
    all_ok = True

    try:
        store_group = request.app.state.store_group
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        log.warning("readiness_check_failed", check="sqlite", error=str(e))
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        },
    )
