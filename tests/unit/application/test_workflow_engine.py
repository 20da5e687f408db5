"""Unit tests for the workflow engine."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.application.services.workflow_engine import WorkflowEngine
from src.commons.infrastructure.documentdb import InMemoryDocumentDB
from src.domain.exceptions import (
    ConcurrentModificationException,
    StateStoreException,
)
from src.domain.models.processing import ProcessingEvent, ProcessingState
from src.infrastructure.persistence import (
    DocumentDBStateRecordStore,
    InMemoryStateRecordStore,
)

S = ProcessingState
E = ProcessingEvent


@pytest.fixture(params=["memory", "documentdb"])
def store(request):
    """Run each test against both store implementations."""
    if request.param == "memory":
        return InMemoryStateRecordStore()
    return DocumentDBStateRecordStore(InMemoryDocumentDB(), "processing_states")


@pytest.fixture
def engine(store):
    return WorkflowEngine(store)


async def drive(engine, entity_id, *events):
    """Send events in order and return their results."""
    return [await engine.send_event(entity_id, event) for event in events]


class _FailingSaveStore(InMemoryStateRecordStore):
    """Store whose first ``save`` raises."""

    def __init__(self, error: Exception) -> None:
        super().__init__()
        self._error: Exception | None = error

    async def save(self, record):
        if self._error is not None:
            error, self._error = self._error, None
            raise error
        return await super().save(record)


class _SlowStore(InMemoryStateRecordStore):
    """Store whose reads never finish in time."""

    async def create(self, entity_id):
        await asyncio.sleep(5)
        return await super().create(entity_id)

    async def get(self, entity_id):
        await asyncio.sleep(5)
        return await super().get(entity_id)


class _AlwaysConflictingStore(InMemoryStateRecordStore):
    async def save(self, record):
        raise ConcurrentModificationException(record.entity_id, record.version)


class TestInitialize:
    """Tests for initialize."""

    async def test_creates_pending_record(self, engine):
        record = await engine.initialize("v1")

        assert record.entity_id == "v1"
        assert record.current_state == S.PENDING
        assert await engine.current_state("v1") == S.PENDING

    async def test_is_idempotent(self, engine):
        """Test that re-initializing keeps progress."""
        await engine.initialize("v1")
        await engine.send_event("v1", E.UPLOAD_COMPLETED)

        record = await engine.initialize("v1")

        assert record.current_state == S.UPLOADED

    async def test_unknown_entity_is_pending(self, engine):
        assert await engine.current_state("never-seen") == S.PENDING
        assert await engine.get_record("never-seen") is None
        assert await engine.is_terminal("never-seen") is False


class TestSendEvent:
    """Tests for send_event and apply_event."""

    async def test_happy_path_reaches_ready(self, engine):
        results = await drive(
            engine,
            "v1",
            E.UPLOAD_COMPLETED,
            E.START_VALIDATION,
            E.VALIDATION_SUCCEEDED,
            E.START_TRANSCODING,
            E.TRANSCODING_SUCCEEDED,
            E.START_METADATA_EXTRACTION,
            E.METADATA_EXTRACTION_SUCCEEDED,
            E.START_THUMBNAIL_GENERATION,
            E.THUMBNAIL_GENERATION_SUCCEEDED,
        )

        assert all(results)
        record = await engine.get_record("v1")
        assert record.current_state == S.READY
        assert record.last_event == "THUMBNAIL_GENERATION_SUCCEEDED"
        assert await engine.is_terminal("v1") is True

    async def test_validation_failure_then_retry(self, engine):
        """Test the validate, fail, retry scenario."""
        await engine.initialize("v1")

        assert await engine.send_event("v1", E.UPLOAD_COMPLETED) is True
        assert await engine.current_state("v1") == S.UPLOADED
        assert await engine.send_event("v1", E.START_VALIDATION) is True
        assert await engine.current_state("v1") == S.VALIDATING
        assert await engine.send_event("v1", E.VALIDATION_FAILED) is True

        record = await engine.get_record("v1")
        assert record.current_state == S.FAILED
        assert record.error_details is None

        assert await engine.retry("v1", S.VALIDATING) is True
        record = await engine.get_record("v1")
        assert record.retry_count == 1
        assert record.current_state == S.VALIDATING

    async def test_cannot_skip_steps(self, engine):
        """Test that a pending video cannot start transcoding."""
        assert await engine.send_event("v2", E.START_TRANSCODING) is False

        record = await engine.get_record("v2")
        assert record.current_state == S.PENDING
        assert record.last_event == "START_TRANSCODING"

    async def test_apply_event_reports_previous_state(self, engine):
        await engine.initialize("v1")

        result = await engine.apply_event("v1", E.UPLOAD_COMPLETED)

        assert result.accepted is True
        assert result.previous_state == S.PENDING
        assert result.state == S.UPLOADED
        assert result.record.version == 1

    async def test_rejected_event_reports_unchanged_state(self, engine):
        await engine.initialize("v1")

        result = await engine.apply_event("v1", E.THUMBNAIL_GENERATION_SUCCEEDED)

        assert result.accepted is False
        assert result.previous_state == S.PENDING
        assert result.state == S.PENDING

    async def test_start_event_is_repeatable(self, engine):
        """Test that a redelivered START message is accepted."""
        await drive(engine, "v1", E.UPLOAD_COMPLETED, E.START_VALIDATION)
        await engine.send_event("v1", E.VALIDATION_SUCCEEDED)

        assert await engine.send_event("v1", E.START_TRANSCODING) is True
        assert await engine.send_event("v1", E.START_TRANSCODING) is True
        assert await engine.current_state("v1") == S.TRANSCODING

    async def test_no_forward_progress_after_ready(self, engine):
        await engine.initialize("v1")
        await drive(
            engine,
            "v1",
            E.UPLOAD_COMPLETED,
            E.START_VALIDATION,
            E.VALIDATION_SUCCEEDED,
            E.TRANSCODING_SUCCEEDED,
            E.METADATA_EXTRACTION_SUCCEEDED,
            E.THUMBNAIL_GENERATION_SUCCEEDED,
        )

        assert await engine.send_event("v1", E.START_VALIDATION) is False
        assert await engine.send_event("v1", E.MARK_AS_FAILED) is False
        assert await engine.current_state("v1") == S.READY

    async def test_delete_is_idempotent(self, engine):
        await engine.initialize("v1")

        assert await engine.send_event("v1", E.DELETE) is True
        assert await engine.send_event("v1", E.DELETE) is True
        assert await engine.current_state("v1") == S.DELETED

    async def test_delete_from_every_state(self, engine):
        await drive(engine, "v1", E.UPLOAD_COMPLETED, E.START_VALIDATION)
        assert await engine.send_event("v1", E.DELETE) is True
        assert await engine.current_state("v1") == S.DELETED
        assert await engine.send_event("v1", E.UPLOAD_COMPLETED) is False


class TestRecordFailure:
    """Tests for record_failure and set_error_details."""

    async def test_record_failure_sets_details_and_state(self, engine):
        await drive(engine, "v1", E.UPLOAD_COMPLETED, E.START_VALIDATION)

        assert await engine.record_failure("v1", "corrupt container") is True

        record = await engine.get_record("v1")
        assert record.current_state == S.FAILED
        assert record.error_details == "corrupt container"

    async def test_accepted_failure_is_one_save(self, engine):
        await drive(engine, "v1", E.UPLOAD_COMPLETED, E.START_VALIDATION)

        await engine.record_failure("v1", "corrupt container")

        assert (await engine.get_record("v1")).version == 3

    async def test_apply_event_stores_error_with_transition(self, engine):
        await drive(engine, "v1", E.UPLOAD_COMPLETED, E.START_VALIDATION)

        result = await engine.apply_event(
            "v1", E.VALIDATION_FAILED, error_details="bad codec"
        )

        assert result.accepted is True
        assert result.record.error_details == "bad codec"
        assert result.record.version == 3

    async def test_apply_event_ignores_error_when_rejected(self, engine):
        await engine.initialize("v1")

        result = await engine.apply_event(
            "v1", E.VALIDATION_FAILED, error_details="late"
        )

        assert result.accepted is False
        assert result.record.error_details is None

    async def test_record_failure_on_terminal_video(self, engine):
        """Test that details are stored even when the event is refused."""
        await engine.send_event("v1", E.DELETE)

        assert await engine.record_failure("v1", "late failure") is False

        record = await engine.get_record("v1")
        assert record.current_state == S.DELETED
        assert record.error_details == "late failure"


class TestRetry:
    """Tests for recovery."""

    async def test_retry_requires_failed(self, engine):
        await drive(engine, "v1", E.UPLOAD_COMPLETED)

        assert await engine.retry("v1", S.UPLOADED) is False

        record = await engine.get_record("v1")
        assert record.current_state == S.UPLOADED
        assert record.retry_count == 0

    async def test_retry_unknown_entity(self, engine):
        assert await engine.retry("missing", S.UPLOADED) is False
        assert await engine.get_record("missing") is None

    async def test_retry_clears_error(self, engine):
        await engine.initialize("v1")
        await engine.record_failure("v1", "boom")

        assert await engine.retry("v1", S.UPLOADED) is True

        record = await engine.get_record("v1")
        assert record.current_state == S.UPLOADED
        assert record.error_details is None
        assert record.retry_count == 1

    @pytest.mark.parametrize("target", [S.READY, S.FAILED, S.DELETED])
    async def test_retry_refuses_terminal_targets(self, engine, target):
        await engine.initialize("v1")
        await engine.send_event("v1", E.MARK_AS_FAILED)

        assert await engine.retry("v1", target) is False

        record = await engine.get_record("v1")
        assert record.current_state == S.FAILED
        assert record.retry_count == 0

    @pytest.mark.parametrize("target", list(S))
    async def test_retry_outside_failed_returns_false_for_any_target(
        self, engine, target
    ):
        await engine.initialize("v1")

        assert await engine.retry("v1", target) is False
        assert await engine.current_state("v1") == S.PENDING

    async def test_retry_refused_while_compensating(self, engine):
        await engine.initialize("v1")
        await engine.send_event("v1", E.MARK_AS_FAILED)
        await engine.start_compensation("v1")

        assert await engine.retry("v1", S.UPLOADED) is False
        assert await engine.current_state("v1") == S.FAILED


class TestCompensation:
    """Tests for start_compensation and complete_compensation."""

    async def test_start_requires_failed(self, engine):
        await engine.initialize("v1")

        assert await engine.start_compensation("v1") is False
        assert (await engine.get_record("v1")).compensating_transaction is False

    async def test_start_and_complete(self, engine):
        await engine.initialize("v1")
        await engine.send_event("v1", E.MARK_AS_FAILED)
        await engine.retry("v1", S.UPLOADED)
        await engine.send_event("v1", E.MARK_AS_FAILED)

        assert await engine.start_compensation("v1") is True
        assert await engine.start_compensation("v1") is True
        record = await engine.get_record("v1")
        assert record.compensating_transaction is True
        assert record.retry_count == 1

        assert await engine.complete_compensation("v1") is True
        record = await engine.get_record("v1")
        assert record.compensating_transaction is False
        assert record.retry_count == 0

    async def test_delete_ends_compensation(self, engine):
        await engine.initialize("v1")
        await engine.send_event("v1", E.MARK_AS_FAILED)
        await engine.start_compensation("v1")

        await engine.send_event("v1", E.DELETE)

        assert (await engine.get_record("v1")).compensating_transaction is False

    async def test_complete_unknown_entity(self, engine):
        assert await engine.complete_compensation("missing") is False

    async def test_complete_without_rollback_keeps_retry_count(self, engine):
        await engine.initialize("v1")
        await engine.send_event("v1", E.MARK_AS_FAILED)
        await engine.retry("v1", S.UPLOADED)
        await engine.send_event("v1", E.MARK_AS_FAILED)

        assert await engine.complete_compensation("v1") is True

        record = await engine.get_record("v1")
        assert record.retry_count == 1
        assert record.version == 3


class TestConcurrency:
    """Tests for concurrent updates of one video."""

    async def test_concurrent_same_event_applies_once(self, engine):
        await engine.initialize("v1")

        results = await asyncio.gather(
            engine.send_event("v1", E.UPLOAD_COMPLETED),
            engine.send_event("v1", E.UPLOAD_COMPLETED),
        )

        assert sorted(results) == [False, True]
        assert await engine.current_state("v1") == S.UPLOADED

    async def test_no_lost_updates(self, store):
        engine = WorkflowEngine(store, max_conflict_retries=50)
        await engine.initialize("v1")

        await asyncio.gather(
            *(engine.set_error_details("v1", f"attempt {i}") for i in range(10))
        )

        record = await engine.get_record("v1")
        assert record.version == 10

    async def test_different_videos_do_not_contend(self, engine):
        ids = [f"v{i}" for i in range(5)]

        results = await asyncio.gather(
            *(engine.send_event(video_id, E.UPLOAD_COMPLETED) for video_id in ids)
        )

        assert all(results)
        for video_id in ids:
            assert await engine.current_state(video_id) == S.UPLOADED

    async def test_conflicts_past_limit_raise(self):
        engine = WorkflowEngine(
            _AlwaysConflictingStore(),
            observer=AsyncMock(),
            max_conflict_retries=3,
        )

        with pytest.raises(ConcurrentModificationException):
            await engine.send_event("v1", E.UPLOAD_COMPLETED)


class TestSendEventAsync:
    """Tests for send_event_async."""

    async def test_returns_task_with_result(self, engine):
        await engine.initialize("v1")

        task = engine.send_event_async("v1", E.UPLOAD_COMPLETED)

        assert isinstance(task, asyncio.Task)
        assert await task is True
        assert await engine.current_state("v1") == S.UPLOADED

    async def test_drain_waits_for_scheduled_events(self, engine):
        await engine.initialize("v1")

        engine.send_event_async("v1", E.UPLOAD_COMPLETED)
        await engine.drain()

        assert await engine.current_state("v1") == S.UPLOADED


class TestErrors:
    """Tests for store failures."""

    async def test_store_timeout_raises_state_store_exception(self):
        observer = AsyncMock()
        engine = WorkflowEngine(
            _SlowStore(),
            observer=observer,
            store_timeout_seconds=0.01,
        )

        with pytest.raises(StateStoreException) as exc_info:
            await engine.send_event("v1", E.UPLOAD_COMPLETED)

        assert exc_info.value.operation == "create"
        observer.on_error.assert_awaited_once()

    async def test_get_timeout(self):
        engine = WorkflowEngine(_SlowStore(), store_timeout_seconds=0.01)

        with pytest.raises(StateStoreException):
            await engine.current_state("v1")

    async def test_unexpected_error_is_recorded_and_raised(self):
        store = _FailingSaveStore(RuntimeError("disk full"))
        engine = WorkflowEngine(store)
        await engine.initialize("v1")

        with pytest.raises(RuntimeError, match="disk full"):
            await engine.send_event("v1", E.UPLOAD_COMPLETED)

        record = await engine.get_record("v1")
        assert record.current_state == S.PENDING
        assert record.error_details == "disk full"


class TestObserverCallbacks:
    """Tests for observer notifications."""

    async def test_accepted_transition_notifies(self, store):
        observer = AsyncMock()
        engine = WorkflowEngine(store, observer=observer)
        await engine.initialize("v1")

        await engine.send_event("v1", E.UPLOAD_COMPLETED)

        observer.on_state_changed.assert_awaited_once_with(
            "v1", S.PENDING, S.UPLOADED, E.UPLOAD_COMPLETED
        )
        observer.on_event_rejected.assert_not_awaited()

    async def test_rejected_event_notifies(self, store):
        observer = AsyncMock()
        engine = WorkflowEngine(store, observer=observer)
        await engine.initialize("v1")

        await engine.send_event("v1", E.START_TRANSCODING)

        observer.on_event_rejected.assert_awaited_once_with(
            "v1", S.PENDING, E.START_TRANSCODING
        )
        observer.on_state_changed.assert_not_awaited()
