"""TaskService tests

Covers code generation, every lifecycle operation against the store, audit
events, serialised concurrent writers, and rollback on persistence failure.
"""

import asyncio

import pytest
from shopfloor.core.config import get_task_code_max_retries
from shopfloor.core.exceptions import (
    IllegalTransitionError,
    InvalidIntervalError,
    TaskCodeExistsError,
    TaskConflictError,
    TaskNotFoundError,
)
from shopfloor.core.models import ClosureData, EventType, TaskAttributes, TaskStatus

import shopfloor.gateway.services.task_service as task_service_module


class TestCreateTask:
    async def test_generated_codes_increment_per_day(self, service, clock):
        first = await service.create_task(TaskAttributes(part_ref="PZ-100"))
        second = await service.create_task(TaskAttributes(part_ref="PZ-200"))

        assert first.task_id == "MO20250101-001"
        assert second.task_id == "MO20250101-002"
        assert first.status == TaskStatus.PENDING
        assert first.persistent_id != second.persistent_id

        clock.advance(24 * 3600)
        third = await service.create_task(TaskAttributes())
        assert third.task_id == "MO20250102-001"

    async def test_prefix_from_env(self, service, monkeypatch):
        monkeypatch.setenv("SHOPFLOOR_TASK_CODE_PREFIX", "OT")
        task = await service.create_task(TaskAttributes())
        assert task.task_id == "OT20250101-001"

    async def test_explicit_duplicate_code_rejected(self, service):
        await service.create_task(TaskAttributes(), task_code="MO20250101-050")
        with pytest.raises(TaskCodeExistsError):
            await service.create_task(TaskAttributes(), task_code="MO20250101-050")

    async def test_generated_code_skips_explicit_codes(self, service):
        await service.create_task(TaskAttributes(), task_code="MO20250101-007")
        task = await service.create_task(TaskAttributes())
        assert task.task_id == "MO20250101-008"

    async def test_created_event_written(self, service):
        task = await service.create_task(TaskAttributes(operator="jlopez"))
        events = await service.get_task_events(task)

        assert len(events) == 1
        assert events[0].type == EventType.TASK_CREATED
        assert events[0].task_seq == 1
        assert events[0].payload["attributes"]["operator"] == "jlopez"
        assert events[0].trace_id == f"trace-{task.task_id}"

    @pytest.mark.parametrize("value", ["0", "-2", "abc"])
    async def test_bad_retries_setting_still_creates(self, service, monkeypatch, value):
        monkeypatch.setenv("SHOPFLOOR_TASK_CODE_MAX_RETRIES", value)
        task = await service.create_task(TaskAttributes())

        assert task.task_id == "MO20250101-001"
        assert len(await service.list_tasks()) == 1

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, 3), ("5", 5), ("1", 1), ("0", 3), ("-2", 3), ("abc", 3)],
    )
    def test_retries_setting(self, monkeypatch, value, expected):
        if value is None:
            monkeypatch.delenv("SHOPFLOOR_TASK_CODE_MAX_RETRIES", raising=False)
        else:
            monkeypatch.setenv("SHOPFLOOR_TASK_CODE_MAX_RETRIES", value)
        assert get_task_code_max_retries() == expected


class TestLifecycle:
    async def test_full_lifecycle_with_clock(self, service, clock, store_group):
        task = await service.create_task(TaskAttributes())

        await service.start_task(task.task_id)
        clock.advance(100)
        paused = await service.record_unproductive_cause(
            task.task_id, "Máquina averiada", "husillo"
        )
        assert paused.status == TaskStatus.UNPRODUCTIVE_PAUSED
        assert paused.productive_seconds == 100.0

        clock.advance(300)
        resumed = await service.resume_task(task.task_id)
        assert resumed.unproductive_events[0].duration == 300.0

        clock.advance(100)
        closure = ClosureData(pieces_started=10, pieces_finished=9, order_finished=True)
        done = await service.finish_task(task.task_id, closure)

        assert done.status == TaskStatus.COMPLETED
        assert done.productive_seconds == 200.0
        assert done.version == 4

        stored = await store_group.task_store.load_task(task.task_id)
        assert stored == done

        events = await service.get_task_events(done)
        assert [e.type for e in events] == [
            EventType.TASK_CREATED,
            EventType.TASK_STARTED,
            EventType.UNPRODUCTIVE_CAUSE_RECORDED,
            EventType.TASK_RESUMED,
            EventType.TASK_FINISHED,
        ]
        assert [e.task_seq for e in events] == [1, 2, 3, 4, 5]
        assert events[3].payload["cause_duration"] == 300.0
        assert events[4].payload["closure"]["pieces_finished"] == 9

    async def test_set_in_progress_starts_or_resumes(self, service, clock):
        task = await service.create_task(TaskAttributes())

        started = await service.set_in_progress(task.task_id)
        assert started.status == TaskStatus.IN_PROGRESS

        clock.advance(10)
        await service.record_unproductive_cause(task.task_id, "Capacitación")
        clock.advance(20)
        resumed = await service.set_in_progress(task.task_id)
        assert resumed.status == TaskStatus.IN_PROGRESS
        assert resumed.unproductive_events[0].duration == 20.0

        with pytest.raises(IllegalTransitionError) as exc_info:
            await service.set_in_progress(task.task_id)
        assert exc_info.value.current_status == TaskStatus.IN_PROGRESS

    async def test_unknown_task(self, service):
        with pytest.raises(TaskNotFoundError):
            await service.start_task("MO20250101-999")

    async def test_rejected_transition_leaves_store_unchanged(self, service, store_group):
        task = await service.create_task(TaskAttributes())

        with pytest.raises(IllegalTransitionError) as exc_info:
            await service.finish_task(task.task_id)
        assert exc_info.value.current_status == TaskStatus.PENDING

        stored = await store_group.task_store.load_task(task.task_id)
        assert stored == task
        assert len(await service.get_task_events(task)) == 1

    async def test_observations_truncated(self, service, monkeypatch):
        monkeypatch.setattr(task_service_module, "OBSERVATIONS_MAX_LENGTH", 5)
        task = await service.create_task(TaskAttributes())
        await service.start_task(task.task_id)

        paused = await service.record_unproductive_cause(task.task_id, "X", "abcdefghij")
        assert paused.unproductive_events[0].observations == "abcde"

    async def test_clock_going_backwards_rejected(self, service, clock, store_group):
        task = await service.create_task(TaskAttributes())
        await service.start_task(task.task_id)

        clock.advance(-60)
        with pytest.raises(InvalidIntervalError):
            await service.record_unproductive_cause(task.task_id, "X")

        stored = await store_group.task_store.load_task(task.task_id)
        assert stored.status == TaskStatus.IN_PROGRESS


class TestConcurrency:
    async def test_concurrent_finish_one_wins(self, service, clock):
        """Two operators finish the same task; exactly one succeeds, the other sees COMPLETED"""
        task = await service.create_task(TaskAttributes())
        await service.start_task(task.task_id)
        clock.advance(60)

        results = await asyncio.gather(
            service.finish_task(task.task_id),
            service.finish_task(task.task_id),
            return_exceptions=True,
        )

        finished = [r for r in results if not isinstance(r, Exception)]
        errors = [r for r in results if isinstance(r, Exception)]
        assert len(finished) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], IllegalTransitionError)
        assert errors[0].current_status == TaskStatus.COMPLETED
        assert finished[0].productive_seconds == 60.0

        events = await service.get_task_events(finished[0])
        assert [e.type for e in events].count(EventType.TASK_FINISHED) == 1

    async def test_lock_released_after_completion(self, service):
        task = await service.create_task(TaskAttributes())
        await service.start_task(task.task_id)
        assert task.persistent_id in service._task_locks

        await service.finish_task(task.task_id)
        assert task.persistent_id not in service._task_locks


class TestPersistenceFailure:
    async def test_failed_commit_leaves_task_unchanged(
        self, service, store_group, clock, monkeypatch
    ):
        task = await service.create_task(TaskAttributes())
        await service.start_task(task.task_id)
        clock.advance(100)

        async def broken_append(event):
            raise RuntimeError("disk full")

        monkeypatch.setattr(store_group.event_store, "append_event", broken_append)

        with pytest.raises(RuntimeError):
            await service.record_unproductive_cause(task.task_id, "Máquina averiada")

        stored = await store_group.task_store.load_task(task.task_id)
        assert stored.status == TaskStatus.IN_PROGRESS
        assert stored.productive_seconds == 0.0
        assert stored.unproductive_events == []
        assert stored.version == 1

    async def test_conflict_propagates_unchanged(self, service, store_group, monkeypatch):
        task = await service.create_task(TaskAttributes())

        # another process bumps the version between load and save
        original_load = store_group.task_store.load_task
        calls = 0

        async def load_then_bump(task_id):
            nonlocal calls
            calls += 1
            loaded = await original_load(task_id)
            if calls == 2:
                await store_group.conn.execute(
                    "UPDATE tasks SET version = version + 1 WHERE task_code = ?", (task_id,)
                )
                await store_group.conn.commit()
            return loaded

        monkeypatch.setattr(store_group.task_store, "load_task", load_then_bump)

        with pytest.raises(TaskConflictError):
            await service.start_task(task.task_id)

        monkeypatch.undo()
        stored = await store_group.task_store.load_task(task.task_id)
        assert stored.status == TaskStatus.PENDING
