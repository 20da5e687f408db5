"""Abstract base class for workflow state persistence."""

from abc import ABC, abstractmethod

from src.domain.models.processing import ProcessingState
from src.domain.models.state_record import StateRecord


class StateRecordStoreBase(ABC):
    """Durable, keyed-by-video storage of workflow state records.

    Implementations must make ``save`` a compare-and-set on
    ``StateRecord.version`` so that two writers that read the same version
    cannot both succeed.
    """

    @abstractmethod
    async def get(self, entity_id: str) -> StateRecord | None:
        """Load the record of a video.

        Returns:
            The stored record, or None if the video has no record yet.
        """

    @abstractmethod
    async def create(self, entity_id: str) -> StateRecord:
        """Create a PENDING record for a video.

        Idempotent: if a record exists it is returned unchanged.
        """

    @abstractmethod
    async def save(self, record: StateRecord) -> StateRecord:
        """Persist ``record`` if the stored version still equals ``record.version``.

        Args:
            record: Record carrying the version it was read at.

        Returns:
            The stored record with its version incremented.

        Raises:
            ConcurrentModificationException: If the stored version moved on.
            StateRecordNotFoundException: If the record does not exist.
        """

    @abstractmethod
    async def find_by_state(self, state: ProcessingState) -> list[StateRecord]:
        """Get every record currently in ``state``."""

    @abstractmethod
    async def find_by_compensating(self, compensating: bool) -> list[StateRecord]:
        """Get every record whose rollback flag equals ``compensating``."""

    @abstractmethod
    async def count_by_state(self, state: ProcessingState) -> int:
        """Count records currently in ``state``."""
