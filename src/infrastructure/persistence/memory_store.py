"""In-process state record store for development and tests."""

import asyncio

from src.domain.exceptions import (
    ConcurrentModificationException,
    StateRecordNotFoundException,
)
from src.domain.models.processing import ProcessingState
from src.domain.models.state_record import StateRecord
from src.infrastructure.persistence.base import StateRecordStoreBase


class InMemoryStateRecordStore(StateRecordStoreBase):
    """Dict-backed store with the same version check as the durable one.

    Records are immutable, so they are shared without copying.
    """

    def __init__(self) -> None:
        self._records: dict[str, StateRecord] = {}
        self._lock = asyncio.Lock()

    async def get(self, entity_id: str) -> StateRecord | None:
        await asyncio.sleep(0)
        return self._records.get(entity_id)

    async def create(self, entity_id: str) -> StateRecord:
        async with self._lock:
            existing = self._records.get(entity_id)
            if existing is not None:
                return existing
            record = StateRecord(entity_id=entity_id)
            self._records[entity_id] = record
            return record

    async def save(self, record: StateRecord) -> StateRecord:
        async with self._lock:
            current = self._records.get(record.entity_id)
            if current is None:
                raise StateRecordNotFoundException(record.entity_id)
            if current.version != record.version:
                raise ConcurrentModificationException(
                    record.entity_id, record.version
                )
            stored = record.model_copy(update={"version": record.version + 1})
            self._records[record.entity_id] = stored
            return stored

    async def find_by_state(self, state: ProcessingState) -> list[StateRecord]:
        return sorted(
            (r for r in self._records.values() if r.current_state == state),
            key=lambda r: r.entity_id,
        )

    async def find_by_compensating(self, compensating: bool) -> list[StateRecord]:
        return sorted(
            (
                r
                for r in self._records.values()
                if r.compensating_transaction == compensating
            ),
            key=lambda r: r.entity_id,
        )

    async def count_by_state(self, state: ProcessingState) -> int:
        return sum(1 for r in self._records.values() if r.current_state == state)
