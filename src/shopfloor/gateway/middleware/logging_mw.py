"""LoggingMiddleware -- one request_id per HTTP request, bound to structlog contextvars"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID


class LoggingMiddleware(BaseHTTPMiddleware):
    """Request level logging, echoes the request_id in X-Request-ID"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = str(ULID())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        log = structlog.get_logger()
        await log.ainfo("request_started")
        started = time.monotonic()

        response = await call_next(request)

        await log.ainfo(
            "request_completed",
            status_code=response.status_code,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )

        response.headers["X-Request-ID"] = request_id
        return response
