"""Error response bodies -- {"error": {"code": ..., "message": ...}}"""

from typing import Any

from starlette.responses import JSONResponse


def error_response(status_code: int, code: str, message: str, **extra: Any) -> JSONResponse:
    """Build the JSON error body shared by every route

    Extra keyword arguments are added next to code and message.
    """
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                **extra,
            }
        },
    )
