"""Unit tests for the video processing adapter."""

from unittest.mock import AsyncMock

import pytest

from src.application.services.processing_adapter import VideoProcessingAdapter
from src.application.services.workflow_engine import WorkflowEngine
from src.commons.infrastructure.documentdb import InMemoryDocumentDB
from src.domain.exceptions import StateStoreException
from src.domain.models.processing import ProcessingEvent, ProcessingState
from src.domain.models.video import VideoStatus
from src.infrastructure.persistence import InMemoryStateRecordStore
from src.infrastructure.videos import DocumentDBVideoRepository

S = ProcessingState


@pytest.fixture
def document_db():
    return InMemoryDocumentDB()


@pytest.fixture
def videos(document_db):
    return DocumentDBVideoRepository(document_db, "videos")


@pytest.fixture
def engine():
    return WorkflowEngine(InMemoryStateRecordStore())


@pytest.fixture
def adapter(engine, videos):
    return VideoProcessingAdapter(engine, videos)


@pytest.fixture
async def video_id(document_db, adapter):
    """Create a catalogue video and start its workflow."""
    await document_db.insert("videos", {"id": "v1", "status": "PENDING"})
    await adapter.handle_video_created("v1")
    return "v1"


class _LimitedSaveStore(InMemoryStateRecordStore):
    """Store that fails every save once its allowance is used up."""

    saves_left: int | None = None

    async def save(self, record):
        if self.saves_left is not None:
            if self.saves_left == 0:
                raise StateStoreException("save", "disk full")
            self.saves_left -= 1
        return await super().save(record)


async def advance_to_transcoding(adapter, video_id):
    assert await adapter.handle_video_upload_completed(video_id)
    assert await adapter.start_validation(video_id)
    assert await adapter.handle_validation_succeeded(video_id)


class TestMilestones:
    """Tests for milestone methods."""

    async def test_created_video_is_pending(self, adapter, video_id):
        assert await adapter.get_processing_state(video_id) == S.PENDING

    async def test_full_pipeline_syncs_domain_status(self, adapter, videos, video_id):
        assert await adapter.handle_video_upload_completed(video_id)
        assert await videos.get_status(video_id) == VideoStatus.UPLOADED

        assert await adapter.start_validation(video_id)
        assert await videos.get_status(video_id) == VideoStatus.PROCESSING

        assert await adapter.handle_validation_succeeded(video_id)
        assert await adapter.start_transcoding(video_id)
        assert await adapter.handle_transcoding_succeeded(video_id)
        assert await adapter.start_metadata_extraction(video_id)
        assert await adapter.handle_metadata_extraction_succeeded(video_id)
        assert await adapter.start_thumbnail_generation(video_id)
        assert await videos.get_status(video_id) == VideoStatus.PROCESSING

        assert await adapter.handle_thumbnail_generation_succeeded(video_id)
        assert await adapter.get_processing_state(video_id) == S.READY
        assert await videos.get_status(video_id) == VideoStatus.READY

    async def test_rejected_milestone_leaves_status(self, adapter, videos, video_id):
        assert await adapter.start_transcoding(video_id) is False

        assert await adapter.get_processing_state(video_id) == S.PENDING
        assert await videos.get_status(video_id) == VideoStatus.PENDING

    async def test_status_write_skipped_when_unchanged(self, engine, video_id):
        videos = AsyncMock()
        videos.get_status.return_value = VideoStatus.PROCESSING
        adapter = VideoProcessingAdapter(engine, videos)
        await engine.send_event(video_id, ProcessingEvent.UPLOAD_COMPLETED)
        await engine.send_event(video_id, ProcessingEvent.START_VALIDATION)

        assert await adapter.handle_validation_succeeded(video_id)

        videos.set_status.assert_not_awaited()


class TestFailures:
    """Tests for failure milestones."""

    @pytest.mark.parametrize(
        ("method", "setup_steps"),
        [
            ("handle_validation_failed", 2),
            ("handle_transcoding_failed", 3),
        ],
    )
    async def test_step_failure_records_error(
        self, adapter, videos, video_id, method, setup_steps
    ):
        steps = [
            adapter.handle_video_upload_completed,
            adapter.start_validation,
            adapter.handle_validation_succeeded,
        ]
        for step in steps[:setup_steps]:
            assert await step(video_id)

        assert await getattr(adapter, method)(video_id, "bad codec") is True

        status = await adapter.get_workflow_status(video_id)
        assert status.state == S.FAILED
        assert status.error_details == "bad codec"
        assert await videos.get_status(video_id) == VideoStatus.FAILED

    async def test_failure_and_error_are_saved_together(self, document_db, videos):
        """A failure milestone needs exactly one save to be complete."""
        store = _LimitedSaveStore()
        engine = WorkflowEngine(store)
        adapter = VideoProcessingAdapter(engine, videos)
        await document_db.insert("videos", {"id": "v1", "status": "PENDING"})
        await adapter.handle_video_created("v1")
        assert await adapter.handle_video_upload_completed("v1")
        assert await adapter.start_validation("v1")
        store.saves_left = 1

        assert await adapter.handle_validation_failed("v1", "bad codec") is True

        record = await store.get("v1")
        assert record.current_state == S.FAILED
        assert record.error_details == "bad codec"
        assert await videos.get_status("v1") == VideoStatus.FAILED

    async def test_metadata_and_thumbnail_failures(self, adapter, video_id):
        await advance_to_transcoding(adapter, video_id)
        assert await adapter.handle_transcoding_succeeded(video_id)

        assert await adapter.handle_metadata_extraction_failed(video_id, "no streams")
        assert (await adapter.get_workflow_status(video_id)).error_details == (
            "no streams"
        )

    async def test_thumbnail_failure(self, adapter, video_id):
        await advance_to_transcoding(adapter, video_id)
        assert await adapter.handle_transcoding_succeeded(video_id)
        assert await adapter.handle_metadata_extraction_succeeded(video_id)

        assert await adapter.handle_thumbnail_generation_failed(video_id, "ffmpeg")
        assert await adapter.get_processing_state(video_id) == S.FAILED

    async def test_failure_in_wrong_state_keeps_error_clear(self, adapter, video_id):
        assert await adapter.handle_transcoding_failed(video_id, "late") is False

        status = await adapter.get_workflow_status(video_id)
        assert status.state == S.PENDING
        assert status.error_details is None

    async def test_mark_as_failed(self, adapter, videos, video_id):
        await advance_to_transcoding(adapter, video_id)

        assert await adapter.mark_as_failed(video_id, "worker lost") is True

        status = await adapter.get_workflow_status(video_id)
        assert status.state == S.FAILED
        assert status.error_details == "worker lost"
        assert await videos.get_status(video_id) == VideoStatus.FAILED


class TestDeleteVideo:
    """Tests for delete_video."""

    async def test_deletes_catalogue_then_workflow(self, adapter, videos, video_id):
        assert await adapter.delete_video(video_id) is True

        assert await videos.get_status(video_id) == VideoStatus.DELETED
        assert await adapter.get_processing_state(video_id) == S.DELETED

    async def test_missing_video_leaves_workflow(self, adapter, video_id):
        await adapter.handle_video_created("ghost")

        assert await adapter.delete_video("ghost") is False
        assert await adapter.get_processing_state("ghost") == S.PENDING

    async def test_catalogue_error_leaves_workflow(self, engine, video_id):
        videos = AsyncMock()
        videos.delete.side_effect = ConnectionError("mongo down")
        adapter = VideoProcessingAdapter(engine, videos)

        assert await adapter.delete_video(video_id) is False
        assert await adapter.get_processing_state(video_id) == S.PENDING

    async def test_second_delete_is_refused_by_catalogue(self, adapter, video_id):
        assert await adapter.delete_video(video_id) is True
        assert await adapter.delete_video(video_id) is False
        assert await adapter.get_processing_state(video_id) == S.DELETED

    async def test_handle_video_deleted(self, adapter, video_id):
        assert await adapter.handle_video_deleted(video_id) is True
        assert await adapter.get_processing_state(video_id) == S.DELETED


class TestRecoverVideo:
    """Tests for recover_video."""

    async def test_recovers_failed_video(self, adapter, videos, video_id):
        await advance_to_transcoding(adapter, video_id)
        await adapter.handle_transcoding_failed(video_id, "timeout")

        assert await adapter.recover_video(video_id, S.UPLOADED) is True

        status = await adapter.get_workflow_status(video_id)
        assert status.state == S.UPLOADED
        assert status.retry_count == 1
        assert status.error_details is None
        assert await videos.get_status(video_id) == VideoStatus.UPLOADED

    async def test_unknown_video_is_refused(self, adapter, engine):
        await engine.initialize("orphan")
        await engine.send_event("orphan", ProcessingEvent.MARK_AS_FAILED)

        assert await adapter.recover_video("orphan", S.UPLOADED) is False
        assert await engine.current_state("orphan") == S.FAILED

    async def test_not_failed_is_refused(self, adapter, video_id):
        assert await adapter.recover_video(video_id, S.UPLOADED) is False

    async def test_terminal_target_is_refused(self, adapter, videos, video_id):
        await adapter.mark_as_failed(video_id, "boom")

        assert await adapter.recover_video(video_id, S.READY) is False

        assert await adapter.get_processing_state(video_id) == S.FAILED
        assert await videos.get_status(video_id) == VideoStatus.FAILED


class TestRollback:
    """Tests for start_rollback and complete_rollback."""

    async def test_rollback_cycle(self, adapter, video_id):
        await adapter.mark_as_failed(video_id, "boom")

        assert await adapter.start_rollback(video_id) is True
        assert (await adapter.get_workflow_status(video_id)).compensating is True
        assert await adapter.recover_video(video_id, S.UPLOADED) is False

        assert await adapter.complete_rollback(video_id) is True
        assert (await adapter.get_workflow_status(video_id)).compensating is False
        assert await adapter.recover_video(video_id, S.UPLOADED) is True

    async def test_rollback_requires_failed(self, adapter, video_id):
        assert await adapter.start_rollback(video_id) is False


class TestWorkflowStatus:
    """Tests for get_workflow_status."""

    async def test_not_started(self, adapter):
        status = await adapter.get_workflow_status("nothing")

        assert status.video_id == "nothing"
        assert status.state == S.PENDING
        assert status.status == VideoStatus.PENDING
        assert status.last_updated is None

    async def test_reflects_record(self, adapter, video_id):
        await adapter.handle_video_upload_completed(video_id)

        status = await adapter.get_workflow_status(video_id)

        assert status.state == S.UPLOADED
        assert status.status == VideoStatus.UPLOADED
        assert status.last_event == "UPLOAD_COMPLETED"
        assert status.is_terminal is False
        assert status.last_updated is not None
