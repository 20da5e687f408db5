"""Durable workflow progress of a single video."""

from datetime import UTC, datetime
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field

from src.domain.models.processing import ProcessingEvent, ProcessingState

ERROR_DETAILS_MAX_LENGTH = 1000


def _now() -> datetime:
    return datetime.now(UTC)


def _truncate(message: str | None) -> str | None:
    if message is None:
        return None
    return message[:ERROR_DETAILS_MAX_LENGTH]


class StateRecord(BaseModel):
    """Sole durable representation of a video's workflow progress.

    One record exists per video once the video has been created. Records are
    never removed: deletion moves them to ``DELETED``. All mutators return a
    new instance; the ``version`` field is owned by the record store and is
    used to reject lost updates.
    """

    model_config = ConfigDict(frozen=True)

    entity_id: str = Field(description="ID of the video this record tracks")
    current_state: ProcessingState = Field(
        default=ProcessingState.PENDING,
        description="Current step of the ingestion pipeline",
    )
    last_event: str | None = Field(
        default=None,
        description="Last accepted or attempted event, for diagnostics",
    )
    last_updated: datetime = Field(
        default_factory=_now,
        description="Refreshed on every mutation",
    )
    error_details: str | None = Field(
        default=None,
        max_length=ERROR_DETAILS_MAX_LENGTH,
        description="Failure detail, cleared on successful recovery",
    )
    retry_count: int = Field(
        default=0,
        ge=0,
        description="Number of recovery attempts since the last rollback",
    )
    compensating_transaction: bool = Field(
        default=False,
        description="True while a rollback is in progress",
    )
    version: int = Field(
        default=0,
        ge=0,
        description="Optimistic concurrency token, bumped on every save",
    )

    @property
    def is_terminal(self) -> bool:
        """Check if the record is in READY, FAILED or DELETED."""
        return self.current_state.is_terminal

    @property
    def is_failed(self) -> bool:
        """Check if processing has failed."""
        return self.current_state == ProcessingState.FAILED

    def _touch(self, **updates: Any) -> Self:
        updates["last_updated"] = _now()
        return self.model_copy(update=updates)

    def with_event(self, event: ProcessingEvent) -> Self:
        """Record an attempted event without changing state."""
        return self._touch(last_event=event.value)

    def with_state(self, state: ProcessingState) -> Self:
        """Move to ``state``.

        Leaving FAILED ends any rollback in progress, since the
        compensating flag is only meaningful for failed videos.
        """
        updates: dict[str, Any] = {"current_state": state}
        if state != ProcessingState.FAILED:
            updates["compensating_transaction"] = False
        return self._touch(**updates)

    def with_error(self, message: str | None) -> Self:
        """Set or clear the error details."""
        return self._touch(error_details=_truncate(message))

    def with_retry(self, target_state: ProcessingState) -> Self:
        """Reset to ``target_state`` for another attempt."""
        return self._touch(
            current_state=target_state,
            retry_count=self.retry_count + 1,
            error_details=None,
            compensating_transaction=False,
        )

    def with_compensation(self, active: bool) -> Self:
        """Start or finish a rollback.

        Finishing a rollback also resets the retry budget.
        """
        if active:
            return self._touch(compensating_transaction=True)
        return self._touch(compensating_transaction=False, retry_count=0)

    def to_document(self) -> dict[str, Any]:
        """Serialize for the document database, keyed by ``id``."""
        document = self.model_dump(mode="json")
        document["id"] = document.pop("entity_id")
        return document

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> Self:
        """Rebuild a record from a document database row."""
        data = dict(document)
        data["entity_id"] = str(data.pop("id"))
        data.pop("_id", None)
        return cls.model_validate(data)
