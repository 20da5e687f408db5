"""Routing of catalogue events to the processing workflow."""

from collections.abc import Awaitable, Callable

from src.application.services.processing_adapter import VideoProcessingAdapter
from src.commons.telemetry import get_logger
from src.domain.models.processing import ProcessingState
from src.domain.models.state_record import StateRecord
from src.domain.models.video import VideoStatus

DEFAULT_FAILURE_MESSAGE = "Video processing failed"


class VideoEventRouter:
    """Translates video catalogue events into workflow events.

    A move to PROCESSING is ambiguous on its own, so the router starts the
    step that follows the current processing state.
    """

    def __init__(self, adapter: VideoProcessingAdapter) -> None:
        self._adapter = adapter
        self._next_step: dict[
            ProcessingState, Callable[[str], Awaitable[bool]]
        ] = {
            ProcessingState.UPLOADED: adapter.start_validation,
            ProcessingState.VALIDATING: adapter.start_transcoding,
            ProcessingState.TRANSCODING: adapter.start_metadata_extraction,
            ProcessingState.EXTRACTING_METADATA: adapter.start_thumbnail_generation,
        }
        self._logger = get_logger(__name__)

    async def handle_video_created(self, video_id: str) -> StateRecord:
        self._logger.info(
            "Processing video created event",
            extra={"video_id": video_id},
        )
        return await self._adapter.handle_video_created(video_id)

    async def handle_status_changed(
        self,
        video_id: str,
        new_status: VideoStatus,
        error_message: str | None = None,
    ) -> bool:
        """Apply the workflow event matching a catalogue status change.

        Args:
            video_id: Video whose status changed.
            new_status: Status the catalogue moved to.
            error_message: Failure detail for FAILED, if the catalogue has one.

        Returns:
            True if a workflow event was applied.
        """
        self._logger.info(
            "Processing status changed event: %s",
            new_status.value,
            extra={"video_id": video_id},
        )

        if new_status == VideoStatus.UPLOADED:
            return await self._adapter.handle_video_upload_completed(video_id)
        if new_status == VideoStatus.PROCESSING:
            return await self._start_next_step(video_id)
        if new_status == VideoStatus.READY:
            return await self._complete_thumbnails(video_id)
        if new_status == VideoStatus.FAILED:
            return await self._adapter.mark_as_failed(
                video_id, error_message or DEFAULT_FAILURE_MESSAGE
            )
        if new_status == VideoStatus.DELETED:
            return await self._adapter.handle_video_deleted(video_id)
        return False

    async def _start_next_step(self, video_id: str) -> bool:
        state = await self._adapter.get_processing_state(video_id)
        start = self._next_step.get(state)
        if start is None:
            self._logger.warning(
                "Unexpected move to PROCESSING from %s",
                state.value,
                extra={"video_id": video_id},
            )
            return False
        return await start(video_id)

    async def _complete_thumbnails(self, video_id: str) -> bool:
        state = await self._adapter.get_processing_state(video_id)
        if state != ProcessingState.GENERATING_THUMBNAILS:
            self._logger.warning(
                "Ignoring READY outside thumbnail generation",
                extra={"video_id": video_id, "state": state.value},
            )
            return False
        return await self._adapter.handle_thumbnail_generation_succeeded(video_id)
