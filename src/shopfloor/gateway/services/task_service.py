"""TaskService -- task creation, lifecycle transitions and queries

Every transition is one unit per task:
1. take the per-task lock
2. load the task from TaskStore
3. run the TaskStateMachine operation on a copy, at the clock's current instant
4. save the copy + its audit event in one transaction
5. return the updated task

Domain errors propagate unchanged; the routes translate them to HTTP codes.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime

import aiosqlite
import structlog
from pydantic import BaseModel
from shopfloor.core.clock import Clock, SystemClock
from shopfloor.core.config import (
    OBSERVATIONS_MAX_LENGTH,
    TASK_CODE_SEQ_WIDTH,
    get_task_code_max_retries,
    get_task_code_prefix,
)
from shopfloor.core.exceptions import IllegalTransitionError, TaskCodeExistsError
from shopfloor.core.models import (
    TERMINAL_STATES,
    ActorType,
    ClosureData,
    Event,
    EventType,
    StateTransitionPayload,
    Task,
    TaskAttributes,
    TaskCreatedPayload,
    TaskFinishedPayload,
    TaskResumedPayload,
    TaskStatus,
    UnproductiveCauseRecordedPayload,
)
from shopfloor.core.state_machine import TaskStateMachine
from shopfloor.core.store import StoreGroup
from shopfloor.core.store.transaction import (
    create_task_with_initial_event,
    save_task_and_append_event,
)
from ulid import ULID

log = structlog.get_logger()

# (machine, instant) -> (event type, payload)
TransitionStep = Callable[[TaskStateMachine, datetime], tuple[EventType, BaseModel]]


class TaskService:
    """Task business service"""

    _task_locks: dict[str, asyncio.Lock] = {}
    _task_locks_guard = asyncio.Lock()

    def __init__(self, store_group: StoreGroup, clock: Clock | None = None) -> None:
        self._stores = store_group
        self._clock = clock or SystemClock()

    @property
    def clock(self) -> Clock:
        return self._clock

    async def create_task(
        self,
        attributes: TaskAttributes,
        task_code: str | None = None,
        actor: ActorType = ActorType.SUPERVISOR,
    ) -> Task:
        """Create a PENDING task

        Args:
            attributes: identifying attributes from the reference data
            task_code: explicit code; generated as <prefix><YYYYMMDD>-<NNN> when None
            actor: who creates the task

        Raises:
            TaskCodeExistsError: explicit code taken, or no free code after retries
        """
        attempts = 1 if task_code else get_task_code_max_retries()
        for attempt in range(1, attempts + 1):
            now = self._clock.now()
            code = task_code or await self._next_task_code(now)
            persistent_id = str(ULID())
            task = Task(
                task_id=code,
                persistent_id=persistent_id,
                status=TaskStatus.PENDING,
                attributes=attributes,
                created_at=now,
                updated_at=now,
            )
            event = Event(
                event_id=str(ULID()),
                task_id=persistent_id,
                task_seq=1,
                ts=now,
                type=EventType.TASK_CREATED,
                actor=actor,
                payload=TaskCreatedPayload(
                    task_code=code,
                    attributes=attributes.model_dump(mode="json"),
                ).model_dump(mode="json"),
                trace_id=f"trace-{code}",
            )
            try:
                await create_task_with_initial_event(
                    self._stores.conn,
                    self._stores.task_store,
                    self._stores.event_store,
                    task,
                    event,
                )
            except aiosqlite.IntegrityError as e:
                if self._is_task_code_conflict(e):
                    if attempt < attempts:
                        log.warning("task_code_conflict_retry", task_code=code, attempt=attempt)
                        continue
                    raise TaskCodeExistsError(code) from e
                raise

            await log.ainfo("task_created", task_id=code, persistent_id=persistent_id)
            return task

        raise TaskCodeExistsError(task_code or "")

    async def start_task(self, task_id: str, actor: ActorType = ActorType.OPERATOR) -> Task:
        """PENDING -> IN_PROGRESS"""

        def step(machine: TaskStateMachine, at: datetime) -> tuple[EventType, BaseModel]:
            machine.start(at)
            return EventType.TASK_STARTED, StateTransitionPayload(
                from_status=TaskStatus.PENDING,
                to_status=TaskStatus.IN_PROGRESS,
                at=at,
            )

        return await self._run_transition(task_id, "start", step, actor)

    async def record_unproductive_cause(
        self,
        task_id: str,
        cause: str,
        observations: str = "",
        actor: ActorType = ActorType.OPERATOR,
    ) -> Task:
        """IN_PROGRESS -> UNPRODUCTIVE_PAUSED, opening a cause interval

        The cause is taken as opaque text; checking it against the taxonomy is
        the caller's job.
        """
        observations = observations[:OBSERVATIONS_MAX_LENGTH]

        def step(machine: TaskStateMachine, at: datetime) -> tuple[EventType, BaseModel]:
            machine.record_unproductive_cause(cause, observations, at)
            return EventType.UNPRODUCTIVE_CAUSE_RECORDED, UnproductiveCauseRecordedPayload(
                from_status=TaskStatus.IN_PROGRESS,
                to_status=TaskStatus.UNPRODUCTIVE_PAUSED,
                at=at,
                cause=cause,
                observations=observations,
                productive_seconds=machine.task.productive_seconds,
            )

        return await self._run_transition(task_id, "record_unproductive_cause", step, actor)

    async def resume_task(self, task_id: str, actor: ActorType = ActorType.OPERATOR) -> Task:
        """UNPRODUCTIVE_PAUSED -> IN_PROGRESS, closing the cause interval"""

        def step(machine: TaskStateMachine, at: datetime) -> tuple[EventType, BaseModel]:
            closed = machine.resume_from_unproductive(at)
            return EventType.TASK_RESUMED, TaskResumedPayload(
                from_status=TaskStatus.UNPRODUCTIVE_PAUSED,
                to_status=TaskStatus.IN_PROGRESS,
                at=at,
                cause=closed.cause,
                cause_duration=closed.duration,
            )

        return await self._run_transition(task_id, "resume", step, actor)

    async def finish_task(
        self,
        task_id: str,
        closure: ClosureData | None = None,
        actor: ActorType = ActorType.OPERATOR,
    ) -> Task:
        """IN_PROGRESS -> COMPLETED, storing the closure payload"""
        closure = closure or ClosureData()

        def step(machine: TaskStateMachine, at: datetime) -> tuple[EventType, BaseModel]:
            machine.finish(at)
            machine.task.closure = closure
            return EventType.TASK_FINISHED, TaskFinishedPayload(
                from_status=TaskStatus.IN_PROGRESS,
                to_status=TaskStatus.COMPLETED,
                at=at,
                productive_seconds=machine.task.productive_seconds,
                closure=closure.model_dump(mode="json"),
            )

        return await self._run_transition(task_id, "finish", step, actor)

    async def set_in_progress(self, task_id: str, actor: ActorType = ActorType.OPERATOR) -> Task:
        """Start a PENDING task or resume a paused one

        The choice is made under the task lock, against the freshly loaded status.
        """

        def step(machine: TaskStateMachine, at: datetime) -> tuple[EventType, BaseModel]:
            if machine.status == TaskStatus.UNPRODUCTIVE_PAUSED:
                closed = machine.resume_from_unproductive(at)
                return EventType.TASK_RESUMED, TaskResumedPayload(
                    from_status=TaskStatus.UNPRODUCTIVE_PAUSED,
                    to_status=TaskStatus.IN_PROGRESS,
                    at=at,
                    cause=closed.cause,
                    cause_duration=closed.duration,
                )
            machine.start(at)
            return EventType.TASK_STARTED, StateTransitionPayload(
                from_status=TaskStatus.PENDING,
                to_status=TaskStatus.IN_PROGRESS,
                at=at,
            )

        return await self._run_transition(task_id, "start", step, actor)

    async def get_task(self, task_id: str) -> Task | None:
        """Task by code"""
        return await self._stores.task_store.get_task(task_id)

    async def list_tasks(self, status: str | None = None) -> list[Task]:
        """Tasks, newest first"""
        return await self._stores.task_store.list_tasks(status)

    async def get_task_events(self, task: Task) -> list[Event]:
        """Audit trail of a task"""
        return await self._stores.event_store.get_events_for_task(task.persistent_id)

    async def _run_transition(
        self,
        task_id: str,
        operation: str,
        step: TransitionStep,
        actor: ActorType,
    ) -> Task:
        """load -> mutate -> persist under the task lock

        Raises:
            TaskNotFoundError: unknown code
            IllegalTransitionError: operation not allowed from the current status
            InvalidIntervalError: clock went backwards past the interval start
            TaskConflictError: another writer saved the task first
        """
        task_store = self._stores.task_store
        # persistent_id never changes, so it keys the lock
        persistent_id = (await task_store.load_task(task_id)).persistent_id
        lock = await self._get_task_lock(persistent_id)

        async with lock:
            stored = await task_store.load_task(task_id)
            working = stored.model_copy(deep=True)
            machine = TaskStateMachine(working)
            at = self._clock.now()

            try:
                event_type, payload = step(machine, at)
            except IllegalTransitionError as e:
                log.warning(
                    "task_transition_rejected",
                    task_id=task_id,
                    operation=operation,
                    current_status=e.current_status.value,
                )
                raise

            working.updated_at = at
            seq = await self._stores.event_store.get_next_task_seq(persistent_id)
            event = Event(
                event_id=str(ULID()),
                task_id=persistent_id,
                task_seq=seq,
                ts=at,
                type=event_type,
                actor=actor,
                payload=payload.model_dump(mode="json"),
                trace_id=f"trace-{task_id}",
            )

            try:
                await save_task_and_append_event(
                    self._stores.conn,
                    task_store,
                    self._stores.event_store,
                    working,
                    event,
                )
            except Exception as e:
                log.error(
                    "task_persist_failed",
                    task_id=task_id,
                    operation=operation,
                    error_type=type(e).__name__,
                )
                raise

        if working.status in TERMINAL_STATES:
            await self._cleanup_task_lock(persistent_id)

        # task_started / unproductive_cause_recorded / task_resumed / task_finished
        await log.ainfo(
            event_type.value.lower(),
            task_id=task_id,
            task_seq=seq,
            status=working.status.value,
            productive_seconds=working.productive_seconds,
        )
        return working

    async def _next_task_code(self, now: datetime) -> str:
        """<prefix><YYYYMMDD>-<NNN>, one above the highest sequence used that day"""
        day_prefix = f"{get_task_code_prefix()}{now:%Y%m%d}-"
        codes = await self._stores.task_store.list_task_codes_with_prefix(day_prefix)
        highest = 0
        for code in codes:
            suffix = code[len(day_prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{day_prefix}{highest + 1:0{TASK_CODE_SEQ_WIDTH}d}"

    @classmethod
    async def _get_task_lock(cls, persistent_id: str) -> asyncio.Lock:
        """Per-task lock serialising transitions of the same task"""
        async with cls._task_locks_guard:
            lock = cls._task_locks.get(persistent_id)
            if lock is None:
                lock = asyncio.Lock()
                cls._task_locks[persistent_id] = lock
            return lock

    @classmethod
    async def _cleanup_task_lock(cls, persistent_id: str) -> None:
        """Drop the lock of a completed task so the map does not grow forever"""
        async with cls._task_locks_guard:
            lock = cls._task_locks.get(persistent_id)
            if lock is not None and not lock.locked():
                cls._task_locks.pop(persistent_id, None)

    @staticmethod
    def _is_task_code_conflict(error: Exception) -> bool:
        if not isinstance(error, aiosqlite.IntegrityError):
            return False
        return "tasks.task_code" in str(error)
