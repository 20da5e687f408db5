"""MongoDB implementation of document database."""

import time
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from src.commons.infrastructure.blob.base import HealthStatus
from src.commons.infrastructure.documentdb.base import (
    DocumentDBBase,
    DocumentExistsError,
)


def _to_mongo(document: dict[str, Any]) -> dict[str, Any]:
    """Store the domain ``id`` as MongoDB's ``_id``."""
    doc = document.copy()
    if "id" in doc:
        doc["_id"] = doc.pop("id")
    return doc


def _from_mongo(document: dict[str, Any]) -> dict[str, Any]:
    """Restore the domain ``id`` from MongoDB's ``_id``."""
    doc = dict(document)
    doc["id"] = str(doc.pop("_id"))
    return doc


class MongoDBDocumentDB(DocumentDBBase):
    """MongoDB implementation of document database.

    Uses Motor for async operations. Every operation is bounded by the
    client's server selection and socket timeouts, so an unreachable server
    surfaces as a ``pymongo.errors.PyMongoError`` instead of hanging.
    """

    def __init__(
        self,
        connection_string: str,
        database_name: str,
        timeout_ms: int = 5000,
    ) -> None:
        """Initialize MongoDB client.

        Args:
            connection_string: MongoDB connection URI.
            database_name: Name of the database to use.
            timeout_ms: Server selection and socket timeout in milliseconds.
        """
        self._client: AsyncIOMotorClient[dict[str, Any]] = AsyncIOMotorClient(
            connection_string,
            serverSelectionTimeoutMS=timeout_ms,
            socketTimeoutMS=timeout_ms,
        )
        self._db: AsyncIOMotorDatabase[dict[str, Any]] = self._client[database_name]
        self._database_name = database_name

    async def insert(
        self,
        collection: str,
        document: dict[str, Any],
    ) -> str:
        """Insert a document, using its ``id`` as ``_id``."""
        try:
            result = await self._db[collection].insert_one(_to_mongo(document))
        except DuplicateKeyError as e:
            raise DocumentExistsError(collection, str(document.get("id"))) from e
        return str(result.inserted_id)

    async def find_by_id(
        self,
        collection: str,
        document_id: str,
    ) -> dict[str, Any] | None:
        """Find a document by its ``_id``."""
        doc = await self._db[collection].find_one({"_id": document_id})
        return _from_mongo(doc) if doc else None

    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        sort: list[tuple[str, int]] | None = None,
    ) -> list[dict[str, Any]]:
        """Find documents matching filters."""
        cursor = self._db[collection].find(_to_mongo(filters))
        if sort:
            cursor = cursor.sort(
                [
                    ("_id" if field == "id" else field, direction)
                    for field, direction in sort
                ]
            )
        cursor = cursor.skip(skip).limit(limit)
        return [_from_mongo(doc) async for doc in cursor]

    async def update(
        self,
        collection: str,
        document_id: str,
        updates: dict[str, Any],
    ) -> bool:
        """Set fields on the document with ``_id == document_id``."""
        result = await self._db[collection].update_one(
            {"_id": document_id},
            {"$set": _to_mongo(updates)},
        )
        return bool(result.matched_count > 0)

    async def update_if(
        self,
        collection: str,
        document_id: str,
        conditions: dict[str, Any],
        updates: dict[str, Any],
    ) -> bool:
        """Compare-and-set through a single filtered ``update_one``."""
        result = await self._db[collection].update_one(
            {**conditions, "_id": document_id},
            {"$set": _to_mongo(updates)},
        )
        return bool(result.matched_count > 0)

    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        """Count documents matching filters."""
        if filters:
            count = await self._db[collection].count_documents(_to_mongo(filters))
            return int(count)
        count = await self._db[collection].estimated_document_count()
        return int(count)

    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
    ) -> str:
        """Create an index on the collection."""
        index_name = await self._db[collection].create_index(
            fields,
            unique=unique,
            name=name,
        )
        return str(index_name)

    async def health_check(self) -> HealthStatus:
        """Ping the server."""
        start = time.perf_counter()
        try:
            await self._client.admin.command("ping")
        except Exception as e:
            return HealthStatus(
                healthy=False,
                latency_ms=(time.perf_counter() - start) * 1000,
                message=f"MongoDB health check failed: {e}",
                details={"database": self._database_name, "error": str(e)},
            )
        return HealthStatus(
            healthy=True,
            latency_ms=(time.perf_counter() - start) * 1000,
            message="MongoDB is healthy",
            details={"database": self._database_name},
        )

    async def close(self) -> None:
        """Close the client connection."""
        self._client.close()
