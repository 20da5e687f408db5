"""Domain models."""

from src.domain.models.processing import (
    PROCESSING_STATES,
    RECOVERY_TARGETS,
    TERMINAL_STATES,
    ProcessingEvent,
    ProcessingState,
)
from src.domain.models.state_record import StateRecord
from src.domain.models.transitions import (
    TRANSITIONS,
    allowed_events,
    is_legal,
    next_state,
    to_domain_status,
)
from src.domain.models.video import VideoStatus

__all__ = [
    # Workflow vocabulary
    "ProcessingState",
    "ProcessingEvent",
    "TERMINAL_STATES",
    "PROCESSING_STATES",
    "RECOVERY_TARGETS",
    # Transition table
    "TRANSITIONS",
    "next_state",
    "is_legal",
    "allowed_events",
    "to_domain_status",
    # Records
    "StateRecord",
    "VideoStatus",
]
