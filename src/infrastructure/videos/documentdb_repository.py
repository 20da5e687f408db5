"""Video catalogue backed by the document database."""

from datetime import UTC, datetime

from src.commons.infrastructure.documentdb.base import DocumentDBBase
from src.commons.telemetry import get_logger
from src.domain.models.video import VideoStatus
from src.infrastructure.videos.base import VideoRepositoryBase


class DocumentDBVideoRepository(VideoRepositoryBase):
    """Reads and writes the ``status`` field of video documents.

    Deletion is soft: the document is kept with status DELETED and a
    ``deleted_at`` timestamp.
    """

    def __init__(self, document_db: DocumentDBBase, collection: str) -> None:
        self._db = document_db
        self._collection = collection
        self._logger = get_logger(__name__)

    async def get_status(self, video_id: str) -> VideoStatus | None:
        doc = await self._db.find_by_id(self._collection, video_id)
        if doc is None or doc.get("status") is None:
            return None
        return VideoStatus(doc["status"])

    async def set_status(self, video_id: str, status: VideoStatus) -> bool:
        now = datetime.now(UTC).isoformat()
        updated = await self._db.update(
            self._collection,
            video_id,
            {"status": status.value, "updated_at": now},
        )
        if not updated:
            self._logger.warning(
                "Cannot update status of unknown video",
                extra={"video_id": video_id, "status": status.value},
            )
        return updated

    async def delete(self, video_id: str) -> bool:
        now = datetime.now(UTC).isoformat()
        return await self._db.update_if(
            self._collection,
            video_id,
            {"deleted_at": None},
            {
                "status": VideoStatus.DELETED.value,
                "deleted_at": now,
                "updated_at": now,
            },
        )
