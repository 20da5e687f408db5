"""Abstract base class for document database operations."""

from abc import ABC, abstractmethod
from typing import Any

from src.commons.infrastructure.blob.base import HealthStatus


class DocumentExistsError(Exception):
    """Raised when inserting a document whose ID is already taken."""

    def __init__(self, collection: str, document_id: str) -> None:
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"Document already exists: {collection}/{document_id}")


class DocumentDBBase(ABC):
    """Abstract base class for document database operations.

    Documents are plain dicts whose ``id`` key is the primary key.
    Implementations should handle:
    - MongoDB
    - An in-process dict store for development and tests
    """

    @abstractmethod
    async def insert(
        self,
        collection: str,
        document: dict[str, Any],
    ) -> str:
        """Insert a document.

        Args:
            collection: Collection/table name.
            document: Document to insert.

        Returns:
            Document ID.

        Raises:
            DocumentExistsError: If a document with the same ``id`` exists.
        """

    @abstractmethod
    async def find_by_id(
        self,
        collection: str,
        document_id: str,
    ) -> dict[str, Any] | None:
        """Find a document by ID.

        Returns:
            Document if found, None otherwise.
        """

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        sort: list[tuple[str, int]] | None = None,
    ) -> list[dict[str, Any]]:
        """Find documents whose fields equal every value in ``filters``.

        Args:
            collection: Collection/table name.
            filters: Equality filters.
            skip: Number of documents to skip.
            limit: Maximum documents to return.
            sort: Sort specification [(field, direction)].
                  Direction: 1 for ascending, -1 for descending.

        Returns:
            List of matching documents.
        """

    @abstractmethod
    async def update(
        self,
        collection: str,
        document_id: str,
        updates: dict[str, Any],
    ) -> bool:
        """Set fields on a document.

        Returns:
            True if the document exists, False if not found.
        """

    @abstractmethod
    async def update_if(
        self,
        collection: str,
        document_id: str,
        conditions: dict[str, Any],
        updates: dict[str, Any],
    ) -> bool:
        """Set fields on a document only if it still matches ``conditions``.

        This is a single atomic compare-and-set, used for optimistic locking.

        Args:
            collection: Collection/table name.
            document_id: Document ID to update.
            conditions: Equality conditions the stored document must meet.
            updates: Fields to set.

        Returns:
            True if the document matched and was updated, False otherwise.
        """

    @abstractmethod
    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        """Count documents matching filters."""

    @abstractmethod
    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
    ) -> str:
        """Create an index on the collection.

        Returns:
            Index name.
        """

    @abstractmethod
    async def health_check(self) -> HealthStatus:
        """Check service health."""

    async def close(self) -> None:  # noqa: B027
        """Release client resources."""
