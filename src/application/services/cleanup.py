"""Removal of produced media during a rollback."""

from src.commons.infrastructure.blob.base import BlobStorageBase
from src.commons.settings.models import BucketSettings
from src.commons.telemetry import get_logger


class RenditionCleanup:
    """Deletes renditions and thumbnails produced for a video.

    Objects are keyed ``"{video_id}/..."`` in every bucket. The raw upload is
    kept so that a retry can start again from UPLOADED.
    """

    def __init__(
        self,
        blob_storage: BlobStorageBase,
        buckets: BucketSettings,
    ) -> None:
        """Initialize the cleanup.

        Args:
            blob_storage: Object store client.
            buckets: Bucket names; only renditions and thumbnails are touched.
        """
        self._storage = blob_storage
        self._buckets = buckets
        self._logger = get_logger(__name__)

    @property
    def target_buckets(self) -> tuple[str, ...]:
        return (self._buckets.renditions, self._buckets.thumbnails)

    async def remove_outputs(self, video_id: str) -> int:
        """Delete every produced object of ``video_id``.

        Returns:
            Number of objects deleted.
        """
        prefix = f"{video_id}/"
        removed = 0
        for bucket in self.target_buckets:
            if not await self._storage.bucket_exists(bucket):
                self._logger.debug(
                    "Bucket does not exist, skipping",
                    extra={"bucket": bucket},
                )
                continue

            # Listing is capped, so keep going until the prefix is empty
            while True:
                blobs = await self._storage.list_blobs(bucket, prefix=prefix)
                if not blobs:
                    break
                deleted_in_batch = 0
                for blob in blobs:
                    if await self._storage.delete(bucket, blob.path):
                        deleted_in_batch += 1
                removed += deleted_in_batch
                if deleted_in_batch == 0:
                    break

        self._logger.info(
            "Removed produced media",
            extra={"video_id": video_id, "removed_objects": removed},
        )
        return removed
