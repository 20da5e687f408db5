"""Transition table of the ingestion workflow.

Forward progress is strictly table driven: a ``(state, event)`` pair that is
not listed here is rejected. Recovery resets bypass this table on purpose and
live in the workflow engine.
"""

from collections.abc import Mapping
from types import MappingProxyType

from src.domain.models.processing import (
    TERMINAL_STATES,
    ProcessingEvent,
    ProcessingState,
)
from src.domain.models.video import VideoStatus

_S = ProcessingState
_E = ProcessingEvent

_FORWARD_EDGES: dict[tuple[ProcessingState, ProcessingEvent], ProcessingState] = {
    (_S.PENDING, _E.UPLOAD_COMPLETED): _S.UPLOADED,
    (_S.UPLOADED, _E.START_VALIDATION): _S.VALIDATING,
    # Validation
    (_S.VALIDATING, _E.VALIDATION_SUCCEEDED): _S.TRANSCODING,
    (_S.VALIDATING, _E.VALIDATION_FAILED): _S.FAILED,
    (_S.VALIDATING, _E.START_TRANSCODING): _S.TRANSCODING,
    # Transcoding
    (_S.TRANSCODING, _E.START_TRANSCODING): _S.TRANSCODING,
    (_S.TRANSCODING, _E.TRANSCODING_SUCCEEDED): _S.EXTRACTING_METADATA,
    (_S.TRANSCODING, _E.TRANSCODING_FAILED): _S.FAILED,
    (_S.TRANSCODING, _E.START_METADATA_EXTRACTION): _S.EXTRACTING_METADATA,
    # Metadata extraction
    (_S.EXTRACTING_METADATA, _E.START_METADATA_EXTRACTION): _S.EXTRACTING_METADATA,
    (
        _S.EXTRACTING_METADATA,
        _E.METADATA_EXTRACTION_SUCCEEDED,
    ): _S.GENERATING_THUMBNAILS,
    (_S.EXTRACTING_METADATA, _E.METADATA_EXTRACTION_FAILED): _S.FAILED,
    (
        _S.EXTRACTING_METADATA,
        _E.START_THUMBNAIL_GENERATION,
    ): _S.GENERATING_THUMBNAILS,
    # Thumbnails
    (
        _S.GENERATING_THUMBNAILS,
        _E.START_THUMBNAIL_GENERATION,
    ): _S.GENERATING_THUMBNAILS,
    (_S.GENERATING_THUMBNAILS, _E.THUMBNAIL_GENERATION_SUCCEEDED): _S.READY,
    (_S.GENERATING_THUMBNAILS, _E.THUMBNAIL_GENERATION_FAILED): _S.FAILED,
}


def _build_table() -> dict[tuple[ProcessingState, ProcessingEvent], ProcessingState]:
    table = dict(_FORWARD_EDGES)
    for state in ProcessingState:
        if state not in TERMINAL_STATES:
            table[(state, _E.MARK_AS_FAILED)] = _S.FAILED
        table[(state, _E.DELETE)] = _S.DELETED
    return table


TRANSITIONS: Mapping[tuple[ProcessingState, ProcessingEvent], ProcessingState] = (
    MappingProxyType(_build_table())
)

_DOMAIN_STATUS: Mapping[ProcessingState, VideoStatus] = MappingProxyType(
    {
        _S.PENDING: VideoStatus.PENDING,
        _S.UPLOADED: VideoStatus.UPLOADED,
        _S.VALIDATING: VideoStatus.PROCESSING,
        _S.TRANSCODING: VideoStatus.PROCESSING,
        _S.EXTRACTING_METADATA: VideoStatus.PROCESSING,
        _S.GENERATING_THUMBNAILS: VideoStatus.PROCESSING,
        _S.READY: VideoStatus.READY,
        _S.FAILED: VideoStatus.FAILED,
        _S.DELETED: VideoStatus.DELETED,
    }
)


def next_state(
    state: ProcessingState,
    event: ProcessingEvent,
) -> ProcessingState | None:
    """Look up the target of a transition.

    Args:
        state: Current processing state.
        event: Event being applied.

    Returns:
        The target state, or None if the event is not accepted in ``state``.
    """
    return TRANSITIONS.get((state, event))


def is_legal(state: ProcessingState, event: ProcessingEvent) -> bool:
    """Check if ``event`` is accepted in ``state``."""
    return (state, event) in TRANSITIONS


def allowed_events(state: ProcessingState) -> frozenset[ProcessingEvent]:
    """Get every event accepted in ``state``."""
    return frozenset(event for (source, event) in TRANSITIONS if source == state)


def to_domain_status(state: ProcessingState) -> VideoStatus:
    """Map a processing state onto the simplified domain status."""
    return _DOMAIN_STATUS[state]
