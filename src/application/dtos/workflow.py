"""DTOs for workflow status and maintenance passes."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.models.processing import ProcessingState
from src.domain.models.state_record import StateRecord
from src.domain.models.transitions import to_domain_status
from src.domain.models.video import VideoStatus


class WorkflowStatusView(BaseModel):
    """What the owning service exposes to operators about one video."""

    video_id: str
    state: ProcessingState
    status: VideoStatus = Field(description="Domain status matching ``state``")
    is_terminal: bool
    last_event: str | None = None
    error_details: str | None = None
    retry_count: int = 0
    compensating: bool = False
    last_updated: datetime | None = Field(
        default=None,
        description="None when the workflow has not started yet",
    )

    @classmethod
    def from_record(cls, record: StateRecord) -> "WorkflowStatusView":
        """Build the view of a stored record."""
        return cls(
            video_id=record.entity_id,
            state=record.current_state,
            status=to_domain_status(record.current_state),
            is_terminal=record.is_terminal,
            last_event=record.last_event,
            error_details=record.error_details,
            retry_count=record.retry_count,
            compensating=record.compensating_transaction,
            last_updated=record.last_updated,
        )

    @classmethod
    def not_started(cls, video_id: str) -> "WorkflowStatusView":
        """View of a video with no record yet."""
        return cls(
            video_id=video_id,
            state=ProcessingState.PENDING,
            status=VideoStatus.PENDING,
            is_terminal=False,
        )


class RecoveryReport(BaseModel):
    """Result of one recovery pass over failed videos."""

    target_state: ProcessingState
    recovered: list[str] = Field(default_factory=list)
    refused: list[str] = Field(default_factory=list)
    errors: dict[str, str] = Field(
        default_factory=dict,
        description="Video ID to error message for attempts that raised",
    )

    @property
    def attempted(self) -> int:
        return len(self.recovered) + len(self.refused) + len(self.errors)


class CompensationReport(BaseModel):
    """Result of one pass over videos pending rollback."""

    completed: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(
        default_factory=dict,
        description="Video ID to error message for rollbacks that did not finish",
    )
    removed_objects: int = 0
