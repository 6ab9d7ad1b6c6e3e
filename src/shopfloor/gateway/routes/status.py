"""Task status route -- every lifecycle transition goes through here

PUT /api/tasks/{task_id}/status
- state IN_PROGRESS: start (from PENDING) or resume (from UNPRODUCTIVE_PAUSED)
- state PAUSED: record an unproductive cause, `cause` required
- state COMPLETED: finish, with optional closure fields
- 200: updated task
- 400: instant earlier than the interval start
- 404: unknown task
- 409: illegal transition (body carries current_status) or concurrent change
"""

from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from shopfloor.core.exceptions import (
    IllegalTransitionError,
    InvalidIntervalError,
    TaskConflictError,
    TaskNotFoundError,
)
from shopfloor.core.models import ClosureData
from starlette.responses import JSONResponse

from ..deps import get_task_service
from ..errors import error_response
from ..services.task_service import TaskService
from .tasks import build_task_view

router = APIRouter()

# Legacy Spanish wire values
_STATE_ALIASES: dict[str, str] = {
    "EN_PROGRESO": "IN_PROGRESS",
    "PAUSADA": "PAUSED",
    "FINALIZADA": "COMPLETED",
}


class StatusChangeRequest(BaseModel):
    """Status change request body"""

    state: Literal["IN_PROGRESS", "PAUSED", "COMPLETED"] = Field(
        validation_alias=AliasChoices("state", "estado"),
        description="Requested state",
    )
    cause: str | None = Field(
        default=None,
        validation_alias=AliasChoices("cause", "causa"),
        description="Unproductive cause, required for PAUSED",
    )
    observations: str = Field(
        default="",
        validation_alias=AliasChoices("observations", "observaciones"),
    )
    pieces_started: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("pieces_started", "piecesStarted")
    )
    pieces_finished: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("pieces_finished", "piecesFinished")
    )
    order_finished: bool = Field(
        default=False, validation_alias=AliasChoices("order_finished", "orderFinished")
    )
    non_conformance: str = Field(
        default="",
        validation_alias=AliasChoices("non_conformance", "nonConformance", "pnc"),
    )

    @field_validator("state", mode="before")
    @classmethod
    def _normalize_state(cls, value: object) -> object:
        if isinstance(value, str):
            upper = value.strip().upper()
            return _STATE_ALIASES.get(upper, upper)
        return value

    @model_validator(mode="after")
    def _cause_required_for_pause(self) -> "StatusChangeRequest":
        if self.state == "PAUSED" and not (self.cause and self.cause.strip()):
            raise ValueError("cause is required when pausing a task")
        return self

    def closure(self) -> ClosureData:
        return ClosureData(
            pieces_started=self.pieces_started,
            pieces_finished=self.pieces_finished,
            order_finished=self.order_finished,
            non_conformance=self.non_conformance,
        )


@router.put("/api/tasks/{task_id}/status")
async def change_task_status(
    task_id: str,
    body: StatusChangeRequest,
    service: TaskService = Depends(get_task_service),
):
    """Apply the transition matching the requested state"""
    try:
        if body.state == "IN_PROGRESS":
            task = await service.set_in_progress(task_id)
        elif body.state == "PAUSED":
            task = await service.record_unproductive_cause(
                task_id, body.cause.strip(), body.observations
            )
        else:
            task = await service.finish_task(task_id, body.closure())
    except TaskNotFoundError as e:
        return error_response(404, "TASK_NOT_FOUND", str(e))
    except IllegalTransitionError as e:
        return error_response(
            409,
            "ILLEGAL_TRANSITION",
            str(e),
            current_status=e.current_status.value,
        )
    except TaskConflictError as e:
        return error_response(409, "TASK_CONFLICT", str(e))
    except InvalidIntervalError as e:
        return error_response(400, "INVALID_INTERVAL", str(e))

    # figures at the instant the transition used
    return JSONResponse(
        status_code=200,
        content=build_task_view(task, task.updated_at).model_dump(mode="json"),
    )
