"""Abstract base class for the domain video catalogue."""

from abc import ABC, abstractmethod

from src.domain.models.video import VideoStatus


class VideoRepositoryBase(ABC):
    """Access to the user-facing video records.

    The workflow only keeps the simplified status in sync; titles, tags and
    other metadata are owned elsewhere.
    """

    @abstractmethod
    async def get_status(self, video_id: str) -> VideoStatus | None:
        """Get the domain status of a video, or None if it does not exist."""

    @abstractmethod
    async def set_status(self, video_id: str, status: VideoStatus) -> bool:
        """Write the domain status of a video.

        Returns:
            True if the video exists, False otherwise.
        """

    @abstractmethod
    async def delete(self, video_id: str) -> bool:
        """Delete a video.

        Returns:
            True if the video was deleted, False if it did not exist.
        """
