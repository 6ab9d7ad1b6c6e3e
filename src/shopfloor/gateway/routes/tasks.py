"""Task routes -- creation and queries

POST /api/tasks: create a PENDING task (201; 409 when the code is taken).
GET /api/tasks: task list, optional status filter, newest first.
GET /api/tasks/{task_id}: task detail with live time figures and audit events.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from shopfloor.core.exceptions import InvalidIntervalError, TaskCodeExistsError
from shopfloor.core.models import Task, TaskAttributes, TaskStatus
from shopfloor.core.state_machine import TaskStateMachine
from shopfloor.core.timekeeping import format_duration
from starlette.responses import JSONResponse

from ..deps import get_task_service
from ..errors import error_response
from ..services.task_service import TaskService

router = APIRouter()


class UnproductiveEventView(BaseModel):
    cause: str
    observations: str
    start_time: str
    end_time: str | None
    duration: float


class TaskView(BaseModel):
    """Task as returned by every task route, with figures computed at `now`"""

    task_id: str
    status: str
    created_at: str
    updated_at: str
    running_since: str | None
    productive_seconds: float
    current_productive_seconds: float
    current_productive_display: str
    current_open_cause_seconds: float | None
    total_unproductive_seconds: float
    total_unproductive_display: str
    unproductive_events: list[UnproductiveEventView]
    attributes: TaskAttributes
    closure: dict | None
    version: int


class TaskListResponse(BaseModel):
    tasks: list[TaskView]


class CreateTaskRequest(BaseModel):
    """Task creation request body"""

    task_code: str | None = Field(default=None, description="Explicit code, generated when omitted")
    part_ref: str = Field(default="", description="Product / part reference")
    operation: str = Field(default="", description="Product operation name")
    work_center: str = Field(default="", description="Machine or work center")
    quantity: int = Field(default=0, ge=0, description="Required quantity")
    operator: str = Field(default="", description="Assigned operator")
    production_order_number: str = Field(default="", description="Production order reference")


def build_task_view(task: Task, now: datetime) -> TaskView:
    """Serialize a task with its live figures at `now`"""
    machine = TaskStateMachine(task)
    productive = machine.current_productive_seconds(now)
    unproductive = machine.event_log.total_unproductive_seconds()

    return TaskView(
        task_id=task.task_id,
        status=task.status.value,
        created_at=task.created_at.isoformat(),
        updated_at=task.updated_at.isoformat(),
        running_since=task.running_since.isoformat() if task.running_since else None,
        productive_seconds=task.productive_seconds,
        current_productive_seconds=productive,
        current_productive_display=format_duration(productive),
        current_open_cause_seconds=machine.current_open_cause_seconds(now),
        total_unproductive_seconds=unproductive,
        total_unproductive_display=format_duration(unproductive),
        unproductive_events=[
            UnproductiveEventView(
                cause=e.cause,
                observations=e.observations,
                start_time=e.start_time.isoformat(),
                end_time=e.end_time.isoformat() if e.end_time else None,
                duration=e.duration,
            )
            for e in task.unproductive_events
        ],
        attributes=task.attributes,
        closure=task.closure.model_dump() if task.closure else None,
        version=task.version,
    )


@router.post("/api/tasks", status_code=201, response_model=TaskView)
async def create_task(
    body: CreateTaskRequest,
    service: TaskService = Depends(get_task_service),
):
    """Create a PENDING task"""
    attributes = TaskAttributes(**body.model_dump(exclude={"task_code"}))
    try:
        task = await service.create_task(attributes, task_code=body.task_code)
    except TaskCodeExistsError as e:
        return error_response(409, "TASK_CODE_EXISTS", str(e))

    return JSONResponse(
        status_code=201,
        content=build_task_view(task, service.clock.now()).model_dump(mode="json"),
    )


@router.get("/api/tasks", response_model=TaskListResponse)
async def list_tasks(
    status: TaskStatus | None = Query(default=None, description="Filter by status"),
    service: TaskService = Depends(get_task_service),
):
    """List tasks, newest first"""
    tasks = await service.list_tasks(status.value if status else None)
    now = service.clock.now()
    try:
        views = [build_task_view(t, now) for t in tasks]
    except InvalidIntervalError as e:
        return error_response(400, "INVALID_INTERVAL", str(e))
    return TaskListResponse(tasks=views)


@router.get("/api/tasks/{task_id}")
async def get_task_detail(
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    """Task detail with its audit events"""
    task = await service.get_task(task_id)
    if task is None:
        return error_response(404, "TASK_NOT_FOUND", f"Task with id {task_id} does not exist")

    events = await service.get_task_events(task)
    events_data = [
        {
            "event_id": e.event_id,
            "task_seq": e.task_seq,
            "ts": e.ts.isoformat(),
            "type": e.type.value,
            "actor": e.actor.value,
            "payload": e.payload,
        }
        for e in events
    ]

    try:
        view = build_task_view(task, service.clock.now())
    except InvalidIntervalError as e:
        return error_response(400, "INVALID_INTERVAL", str(e))

    return {
        "task": view.model_dump(mode="json"),
        "events": events_data,
    }
