"""Domain layer - workflow vocabulary, records and rules."""

from src.domain.exceptions import (
    ConcurrentModificationException,
    DomainException,
    StateRecordNotFoundException,
    StateStoreException,
)
from src.domain.models import (
    PROCESSING_STATES,
    RECOVERY_TARGETS,
    TERMINAL_STATES,
    TRANSITIONS,
    ProcessingEvent,
    ProcessingState,
    StateRecord,
    VideoStatus,
    allowed_events,
    is_legal,
    next_state,
    to_domain_status,
)

__all__ = [
    # Exceptions
    "DomainException",
    "StateRecordNotFoundException",
    "ConcurrentModificationException",
    "StateStoreException",
    # Vocabulary
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
