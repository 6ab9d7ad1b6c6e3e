"""TraceMiddleware -- binds trace_id for requests that address a single task

The trace id is derived from the task code in /api/tasks/{code}[/...], the
same value stored on the task's audit events.
"""

import re

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# MO20250101-001
_TASK_CODE_RE = re.compile(r"^[A-Za-z]+\d{8}-\d+$")


def extract_task_code(path: str) -> str | None:
    """Task code segment following /tasks/ in the path, if any"""
    parts = path.split("/")
    for i, part in enumerate(parts):
        if part == "tasks" and i + 1 < len(parts):
            candidate = parts[i + 1]
            if _TASK_CODE_RE.match(candidate):
                return candidate
    return None


class TraceMiddleware(BaseHTTPMiddleware):
    """Task level tracing middleware"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        task_code = extract_task_code(request.url.path)
        if task_code:
            structlog.contextvars.bind_contextvars(trace_id=f"trace-{task_code}")

        return await call_next(request)
