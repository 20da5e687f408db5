"""Abstract base class for workflow notifications."""

from abc import ABC, abstractmethod
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from src.domain.models.processing import ProcessingEvent, ProcessingState
from src.domain.models.video import VideoStatus


class WorkflowNotification(BaseModel):
    """Announcement that a video reached READY, FAILED or DELETED."""

    video_id: str = Field(description="ID of the video")
    previous_state: ProcessingState
    state: ProcessingState
    status: VideoStatus = Field(description="Domain status matching ``state``")
    event: ProcessingEvent = Field(description="Event that caused the transition")
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class EventPublisherBase(ABC):
    """Fire-and-forget publisher on the notification bus."""

    @abstractmethod
    async def publish(self, notification: WorkflowNotification) -> None:
        """Publish a notification.

        Raises:
            Exception: Any delivery failure; callers treat publishing as best
                effort and must not let it undo a transition.
        """

    async def close(self) -> None:  # noqa: B027
        """Release transport resources."""
