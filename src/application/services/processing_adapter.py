"""Adapter keeping the video catalogue in sync with the processing workflow."""

from src.application.dtos.workflow import WorkflowStatusView
from src.application.services.workflow_engine import WorkflowEngine
from src.commons.telemetry import get_logger
from src.domain.models.processing import ProcessingEvent, ProcessingState
from src.domain.models.state_record import StateRecord
from src.domain.models.transitions import to_domain_status
from src.infrastructure.videos.base import VideoRepositoryBase


class VideoProcessingAdapter:
    """Entry points called by media workers and message consumers.

    Each milestone method sends one event to the engine and, when it is
    accepted, mirrors the new processing state onto the domain video status.
    The returned boolean tells the caller whether the milestone was applied;
    callers own their retry policy when it was not.
    """

    def __init__(
        self,
        engine: WorkflowEngine,
        videos: VideoRepositoryBase,
    ) -> None:
        """Initialize the adapter.

        Args:
            engine: Workflow engine.
            videos: Domain video catalogue.
        """
        self._engine = engine
        self._videos = videos
        self._logger = get_logger(__name__)

    async def handle_video_created(self, video_id: str) -> StateRecord:
        """Start tracking a newly created video."""
        self._logger.info("Handling video creation", extra={"video_id": video_id})
        return await self._engine.initialize(video_id)

    async def handle_video_upload_completed(self, video_id: str) -> bool:
        """The raw upload is stored in the object store."""
        return await self._advance(video_id, ProcessingEvent.UPLOAD_COMPLETED)

    async def start_validation(self, video_id: str) -> bool:
        return await self._advance(video_id, ProcessingEvent.START_VALIDATION)

    async def handle_validation_succeeded(self, video_id: str) -> bool:
        return await self._advance(video_id, ProcessingEvent.VALIDATION_SUCCEEDED)

    async def handle_validation_failed(self, video_id: str, error_message: str) -> bool:
        return await self._fail(
            video_id, ProcessingEvent.VALIDATION_FAILED, error_message
        )

    async def start_transcoding(self, video_id: str) -> bool:
        return await self._advance(video_id, ProcessingEvent.START_TRANSCODING)

    async def handle_transcoding_succeeded(self, video_id: str) -> bool:
        return await self._advance(video_id, ProcessingEvent.TRANSCODING_SUCCEEDED)

    async def handle_transcoding_failed(
        self, video_id: str, error_message: str
    ) -> bool:
        return await self._fail(
            video_id, ProcessingEvent.TRANSCODING_FAILED, error_message
        )

    async def start_metadata_extraction(self, video_id: str) -> bool:
        return await self._advance(video_id, ProcessingEvent.START_METADATA_EXTRACTION)

    async def handle_metadata_extraction_succeeded(self, video_id: str) -> bool:
        return await self._advance(
            video_id, ProcessingEvent.METADATA_EXTRACTION_SUCCEEDED
        )

    async def handle_metadata_extraction_failed(
        self,
        video_id: str,
        error_message: str,
    ) -> bool:
        return await self._fail(
            video_id, ProcessingEvent.METADATA_EXTRACTION_FAILED, error_message
        )

    async def start_thumbnail_generation(self, video_id: str) -> bool:
        return await self._advance(
            video_id, ProcessingEvent.START_THUMBNAIL_GENERATION
        )

    async def handle_thumbnail_generation_succeeded(self, video_id: str) -> bool:
        return await self._advance(
            video_id, ProcessingEvent.THUMBNAIL_GENERATION_SUCCEEDED
        )

    async def handle_thumbnail_generation_failed(
        self,
        video_id: str,
        error_message: str,
    ) -> bool:
        return await self._fail(
            video_id, ProcessingEvent.THUMBNAIL_GENERATION_FAILED, error_message
        )

    async def mark_as_failed(self, video_id: str, error_message: str) -> bool:
        """Fail a video at any non-terminal step."""
        self._logger.error(
            "Marking video as failed: %s",
            error_message,
            extra={"video_id": video_id},
        )
        success = await self._engine.record_failure(video_id, error_message)
        if success:
            await self._sync_status(video_id, ProcessingState.FAILED)
        return success

    async def delete_video(self, video_id: str) -> bool:
        """Delete a video from the catalogue, then mark its workflow DELETED.

        The catalogue decides whether the video is gone: if its deletion
        fails or finds nothing, the workflow is left untouched.

        Returns:
            True if the catalogue deleted the video.
        """
        self._logger.info("Deleting video", extra={"video_id": video_id})
        try:
            deleted = await self._videos.delete(video_id)
        except Exception:
            self._logger.exception(
                "Catalogue deletion failed, workflow left unchanged",
                extra={"video_id": video_id},
            )
            return False

        if not deleted:
            self._logger.warning(
                "Catalogue did not delete video, workflow left unchanged",
                extra={"video_id": video_id},
            )
            return False

        await self._engine.send_event(video_id, ProcessingEvent.DELETE)
        return True

    async def handle_video_deleted(self, video_id: str) -> bool:
        """Mark the workflow DELETED after the catalogue already deleted the video."""
        return await self._engine.send_event(video_id, ProcessingEvent.DELETE)

    async def recover_video(
        self,
        video_id: str,
        target_state: ProcessingState,
    ) -> bool:
        """Reset a failed video to ``target_state`` and restore its domain status.

        Returns:
            False if the video is unknown to the catalogue, is not FAILED, or
            is being rolled back.
        """
        self._logger.info(
            "Attempting recovery to %s",
            target_state.value,
            extra={"video_id": video_id},
        )
        if await self._videos.get_status(video_id) is None:
            self._logger.warning(
                "Cannot recover video missing from catalogue",
                extra={"video_id": video_id},
            )
            return False

        if not await self._engine.retry(video_id, target_state):
            return False

        await self._sync_status(video_id, target_state)
        self._logger.info(
            "Recovered video to %s",
            target_state.value,
            extra={"video_id": video_id},
        )
        return True

    async def start_rollback(self, video_id: str) -> bool:
        """Begin compensating a failed video."""
        self._logger.info("Starting rollback", extra={"video_id": video_id})
        return await self._engine.start_compensation(video_id)

    async def complete_rollback(self, video_id: str) -> bool:
        """Finish compensating a video."""
        self._logger.info("Completing rollback", extra={"video_id": video_id})
        return await self._engine.complete_compensation(video_id)

    async def get_processing_state(self, video_id: str) -> ProcessingState:
        return await self._engine.current_state(video_id)

    async def get_workflow_status(self, video_id: str) -> WorkflowStatusView:
        """Current state and error details for the owning service's API."""
        record = await self._engine.get_record(video_id)
        if record is None:
            return WorkflowStatusView.not_started(video_id)
        return WorkflowStatusView.from_record(record)

    async def _advance(self, video_id: str, event: ProcessingEvent) -> bool:
        self._logger.info(
            "Applying %s",
            event.value,
            extra={"video_id": video_id},
        )
        result = await self._engine.apply_event(video_id, event)
        if result.accepted:
            await self._sync_status(video_id, result.state)
        return result.accepted

    async def _fail(
        self,
        video_id: str,
        event: ProcessingEvent,
        error_message: str,
    ) -> bool:
        self._logger.error(
            "%s: %s",
            event.value,
            error_message,
            extra={"video_id": video_id},
        )
        result = await self._engine.apply_event(
            video_id, event, error_details=error_message
        )
        if not result.accepted:
            return False
        await self._sync_status(video_id, result.state)
        return True

    async def _sync_status(self, video_id: str, state: ProcessingState) -> None:
        status = to_domain_status(state)
        if await self._videos.get_status(video_id) == status:
            return
        await self._videos.set_status(video_id, status)
