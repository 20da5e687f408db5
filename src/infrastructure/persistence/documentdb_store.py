"""State record store backed by the document database."""

from typing import Any

from pymongo.errors import PyMongoError

from src.commons.infrastructure.documentdb.base import (
    DocumentDBBase,
    DocumentExistsError,
)
from src.commons.telemetry import get_logger
from src.domain.exceptions import (
    ConcurrentModificationException,
    StateRecordNotFoundException,
    StateStoreException,
)
from src.domain.models.processing import ProcessingState
from src.domain.models.state_record import StateRecord
from src.infrastructure.persistence.base import StateRecordStoreBase

_PAGE_SIZE = 500


class DocumentDBStateRecordStore(StateRecordStoreBase):
    """Stores one document per video, keyed by the video ID.

    Saves are conditional updates matching the version the caller read, so
    a concurrent writer makes the update match nothing instead of silently
    overwriting.
    """

    def __init__(self, document_db: DocumentDBBase, collection: str) -> None:
        """Initialize the store.

        Args:
            document_db: Document database holding the records.
            collection: Collection name for the records.
        """
        self._db = document_db
        self._collection = collection
        self._logger = get_logger(__name__)

    async def ensure_indexes(self) -> None:
        """Create the indexes used by the recovery queries."""
        try:
            await self._db.create_index(
                self._collection,
                [("current_state", 1), ("retry_count", 1)],
                name="state_retry_idx",
            )
            await self._db.create_index(
                self._collection,
                [("compensating_transaction", 1)],
                name="compensating_idx",
            )
        except PyMongoError as e:
            raise StateStoreException("ensure_indexes", str(e)) from e

    async def get(self, entity_id: str) -> StateRecord | None:
        """Load the record of a video."""
        try:
            doc = await self._db.find_by_id(self._collection, entity_id)
        except PyMongoError as e:
            raise StateStoreException("get", str(e)) from e
        return StateRecord.from_document(doc) if doc else None

    async def create(self, entity_id: str) -> StateRecord:
        """Insert a PENDING record unless one exists."""
        existing = await self.get(entity_id)
        if existing is not None:
            return existing

        record = StateRecord(entity_id=entity_id)
        try:
            await self._db.insert(self._collection, record.to_document())
        except DocumentExistsError:
            # Lost the race against another creator; theirs is authoritative
            stored = await self.get(entity_id)
            if stored is None:
                raise StateStoreException(
                    "create", f"record {entity_id} vanished after conflict"
                ) from None
            return stored
        except PyMongoError as e:
            raise StateStoreException("create", str(e)) from e

        self._logger.debug(
            "Created workflow state record",
            extra={"entity_id": entity_id},
        )
        return record

    async def save(self, record: StateRecord) -> StateRecord:
        """Compare-and-set the record on its version."""
        stored = record.model_copy(update={"version": record.version + 1})
        updates = stored.to_document()
        updates.pop("id")
        try:
            updated = await self._db.update_if(
                self._collection,
                record.entity_id,
                {"version": record.version},
                updates,
            )
        except PyMongoError as e:
            raise StateStoreException("save", str(e)) from e

        if updated:
            return stored

        current = await self.get(record.entity_id)
        if current is None:
            raise StateRecordNotFoundException(record.entity_id)
        raise ConcurrentModificationException(record.entity_id, record.version)

    async def find_by_state(self, state: ProcessingState) -> list[StateRecord]:
        """Get every record currently in ``state``."""
        return await self._find_all({"current_state": state.value})

    async def find_by_compensating(self, compensating: bool) -> list[StateRecord]:
        """Get every record whose rollback flag equals ``compensating``."""
        return await self._find_all({"compensating_transaction": compensating})

    async def count_by_state(self, state: ProcessingState) -> int:
        """Count records currently in ``state``."""
        try:
            return await self._db.count(
                self._collection, {"current_state": state.value}
            )
        except PyMongoError as e:
            raise StateStoreException("count", str(e)) from e

    async def _find_all(self, filters: dict[str, Any]) -> list[StateRecord]:
        records: list[StateRecord] = []
        skip = 0
        while True:
            try:
                page = await self._db.find(
                    self._collection,
                    filters,
                    skip=skip,
                    limit=_PAGE_SIZE,
                    sort=[("id", 1)],
                )
            except PyMongoError as e:
                raise StateStoreException("find", str(e)) from e
            records.extend(StateRecord.from_document(doc) for doc in page)
            if len(page) < _PAGE_SIZE:
                return records
            skip += _PAGE_SIZE
