"""In-process implementation of document database for development and tests."""

import asyncio
import copy
import time
from collections import defaultdict
from typing import Any

from src.commons.infrastructure.blob.base import HealthStatus
from src.commons.infrastructure.documentdb.base import (
    DocumentDBBase,
    DocumentExistsError,
)


def _matches(document: dict[str, Any], filters: dict[str, Any]) -> bool:
    return all(document.get(key) == value for key, value in filters.items())


class InMemoryDocumentDB(DocumentDBBase):
    """Dict-backed document database.

    Every operation yields to the event loop once before touching data, the
    way a network round trip would, so concurrent callers interleave between
    a read and the following write. Each operation is otherwise atomic.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)

    async def insert(
        self,
        collection: str,
        document: dict[str, Any],
    ) -> str:
        """Insert a document, generating no IDs: ``id`` is required."""
        await asyncio.sleep(0)
        document_id = str(document["id"])
        docs = self._collections[collection]
        if document_id in docs:
            raise DocumentExistsError(collection, document_id)
        docs[document_id] = copy.deepcopy(document)
        return document_id

    async def find_by_id(
        self,
        collection: str,
        document_id: str,
    ) -> dict[str, Any] | None:
        """Find a document by ID."""
        await asyncio.sleep(0)
        doc = self._collections[collection].get(document_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        sort: list[tuple[str, int]] | None = None,
    ) -> list[dict[str, Any]]:
        """Find documents matching equality filters."""
        await asyncio.sleep(0)
        results = [
            copy.deepcopy(doc)
            for doc in self._collections[collection].values()
            if _matches(doc, filters)
        ]
        for field, direction in reversed(sort or []):
            results.sort(key=lambda doc: doc.get(field), reverse=direction < 0)
        return results[skip : skip + limit]

    async def update(
        self,
        collection: str,
        document_id: str,
        updates: dict[str, Any],
    ) -> bool:
        """Set fields on a document."""
        return await self.update_if(collection, document_id, {}, updates)

    async def update_if(
        self,
        collection: str,
        document_id: str,
        conditions: dict[str, Any],
        updates: dict[str, Any],
    ) -> bool:
        """Compare-and-set without any suspension between check and write."""
        await asyncio.sleep(0)
        doc = self._collections[collection].get(document_id)
        if doc is None or not _matches(doc, conditions):
            return False
        doc.update(copy.deepcopy(updates))
        return True

    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        """Count documents matching filters."""
        await asyncio.sleep(0)
        return sum(
            1
            for doc in self._collections[collection].values()
            if _matches(doc, filters or {})
        )

    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
    ) -> str:
        """Indexes are not needed in memory; return the name Mongo would use."""
        return name or "_".join(f"{field}_{direction}" for field, direction in fields)

    async def health_check(self) -> HealthStatus:
        """Always healthy."""
        start = time.perf_counter()
        return HealthStatus(
            healthy=True,
            latency_ms=(time.perf_counter() - start) * 1000,
            message="In-memory document DB",
            details={"collections": str(len(self._collections))},
        )
