"""Abstract base class for object store operations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass
class BlobMetadata:
    """Metadata for a stored object."""

    path: str
    size_bytes: int
    created_at: datetime
    etag: str


@dataclass
class HealthStatus:
    """Health check result."""

    healthy: bool
    latency_ms: float
    message: str | None = None
    details: dict[str, str] | None = None


class BlobStorageBase(ABC):
    """Object store holding raw uploads and produced renditions.

    The workflow only needs to enumerate and remove what the media workers
    produced for a video. Implementations should handle:
    - MinIO (local development)
    - AWS S3
    """

    @abstractmethod
    async def list_blobs(
        self,
        bucket: str,
        prefix: str = "",
        max_results: int = 1000,
    ) -> list[BlobMetadata]:
        """List objects with optional prefix filter.

        Args:
            bucket: Bucket name.
            prefix: Key prefix, e.g. ``"{video_id}/"``.
            max_results: Maximum number of objects to return.

        Returns:
            Metadata of the matching objects.
        """

    @abstractmethod
    async def delete(self, bucket: str, path: str) -> bool:
        """Delete an object.

        Returns:
            True if deleted, False if it did not exist.
        """

    @abstractmethod
    async def bucket_exists(self, bucket: str) -> bool:
        """Check if a bucket exists."""

    @abstractmethod
    async def health_check(self) -> HealthStatus:
        """Check service health."""
