"""Queries used by the periodic recovery and rollback jobs."""

from collections.abc import Awaitable
from typing import TypeVar

from src.domain.models.processing import ProcessingState
from src.domain.models.state_record import StateRecord
from src.infrastructure.persistence.base import StateRecordStoreBase
from src.infrastructure.persistence.timeouts import bounded

T = TypeVar("T")


class RecoveryScanner:
    """Finds videos that need a retry or a rollback.

    The scanner only reads. Acting on the results is the caller's job, and
    the engine re-checks every precondition when it does.
    """

    def __init__(
        self,
        store: StateRecordStoreBase,
        store_timeout_seconds: float = 10.0,
    ) -> None:
        self._store = store
        self._timeout = store_timeout_seconds

    async def recoverable(self, max_retries: int) -> list[StateRecord]:
        """Get FAILED records with retries left and no rollback in progress.

        Args:
            max_retries: Records with ``retry_count`` at or above this are
                left alone.
        """
        failed = await self._bounded(
            "find_by_state", self._store.find_by_state(ProcessingState.FAILED)
        )
        return [
            record
            for record in failed
            if record.retry_count < max_retries
            and not record.compensating_transaction
        ]

    async def needing_compensation(self) -> list[StateRecord]:
        """Get records with a rollback in progress."""
        return await self._bounded(
            "find_by_compensating", self._store.find_by_compensating(True)
        )

    async def recoverable_ids(self, max_retries: int) -> list[str]:
        return [record.entity_id for record in await self.recoverable(max_retries)]

    async def compensation_ids(self) -> list[str]:
        return [record.entity_id for record in await self.needing_compensation()]

    async def _bounded(self, operation: str, awaitable: Awaitable[T]) -> T:
        return await bounded(operation, awaitable, self._timeout)
