"""MinIO implementation of the object store."""

import asyncio
import time
from datetime import UTC, datetime

from minio import Minio
from minio.error import S3Error

from src.commons.infrastructure.blob.base import (
    BlobMetadata,
    BlobStorageBase,
    HealthStatus,
)


class MinioBlobStorage(BlobStorageBase):
    """MinIO implementation of the object store.

    Works with both MinIO (local development) and AWS S3 (production). The
    MinIO client is blocking, so every call runs in the default executor.
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        secure: bool = False,
        region: str | None = None,
    ) -> None:
        """Initialize MinIO client.

        Args:
            endpoint: MinIO/S3 endpoint (e.g., "localhost:9000").
            access_key: Access key ID.
            secret_key: Secret access key.
            secure: Use HTTPS connection.
            region: AWS region (optional, for S3).
        """
        self._client = Minio(
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
            region=region,
        )
        self._endpoint = endpoint

    async def list_blobs(
        self,
        bucket: str,
        prefix: str = "",
        max_results: int = 1000,
    ) -> list[BlobMetadata]:
        """List objects under ``prefix``, recursively."""

        def _list() -> list[BlobMetadata]:
            results: list[BlobMetadata] = []
            for obj in self._client.list_objects(
                bucket_name=bucket,
                prefix=prefix,
                recursive=True,
            ):
                if len(results) >= max_results:
                    break
                results.append(
                    BlobMetadata(
                        path=obj.object_name or "",
                        size_bytes=obj.size or 0,
                        created_at=obj.last_modified or datetime.now(UTC),
                        etag=obj.etag or "",
                    )
                )
            return results

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _list)

    async def delete(self, bucket: str, path: str) -> bool:
        """Delete an object if it exists."""

        def _delete() -> bool:
            try:
                self._client.stat_object(bucket, path)
            except S3Error as e:
                if e.code == "NoSuchKey":
                    return False
                raise
            self._client.remove_object(bucket, path)
            return True

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _delete)

    async def bucket_exists(self, bucket: str) -> bool:
        """Check if a bucket exists."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._client.bucket_exists, bucket)

    async def health_check(self) -> HealthStatus:
        """List buckets to check connectivity."""
        start = time.perf_counter()
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._client.list_buckets)
        except Exception as e:
            return HealthStatus(
                healthy=False,
                latency_ms=(time.perf_counter() - start) * 1000,
                message=f"MinIO health check failed: {e}",
                details={"endpoint": self._endpoint, "error": str(e)},
            )
        return HealthStatus(
            healthy=True,
            latency_ms=(time.perf_counter() - start) * 1000,
            message="MinIO is healthy",
            details={"endpoint": self._endpoint},
        )
