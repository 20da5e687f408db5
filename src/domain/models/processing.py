"""Processing states and events of the video ingestion workflow."""

from enum import Enum


class ProcessingState(str, Enum):
    """Step of the ingestion pipeline a video is currently in."""

    PENDING = "PENDING"  # Created, waiting for the raw upload
    UPLOADED = "UPLOADED"  # Raw upload stored in the object store
    VALIDATING = "VALIDATING"
    TRANSCODING = "TRANSCODING"
    EXTRACTING_METADATA = "EXTRACTING_METADATA"
    GENERATING_THUMBNAILS = "GENERATING_THUMBNAILS"
    READY = "READY"  # All renditions available
    FAILED = "FAILED"  # Can re-enter the pipeline through recovery
    DELETED = "DELETED"

    @property
    def is_terminal(self) -> bool:
        """Check if no forward progress is possible from this state."""
        return self in TERMINAL_STATES

    @property
    def is_processing(self) -> bool:
        """Check if a media worker is expected to be busy with the video."""
        return self in PROCESSING_STATES


class ProcessingEvent(str, Enum):
    """Pipeline milestones that trigger state transitions."""

    UPLOAD_COMPLETED = "UPLOAD_COMPLETED"
    START_VALIDATION = "START_VALIDATION"
    VALIDATION_SUCCEEDED = "VALIDATION_SUCCEEDED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    START_TRANSCODING = "START_TRANSCODING"
    TRANSCODING_SUCCEEDED = "TRANSCODING_SUCCEEDED"
    TRANSCODING_FAILED = "TRANSCODING_FAILED"
    START_METADATA_EXTRACTION = "START_METADATA_EXTRACTION"
    METADATA_EXTRACTION_SUCCEEDED = "METADATA_EXTRACTION_SUCCEEDED"
    METADATA_EXTRACTION_FAILED = "METADATA_EXTRACTION_FAILED"
    START_THUMBNAIL_GENERATION = "START_THUMBNAIL_GENERATION"
    THUMBNAIL_GENERATION_SUCCEEDED = "THUMBNAIL_GENERATION_SUCCEEDED"
    THUMBNAIL_GENERATION_FAILED = "THUMBNAIL_GENERATION_FAILED"
    MARK_AS_FAILED = "MARK_AS_FAILED"
    DELETE = "DELETE"


TERMINAL_STATES: frozenset[ProcessingState] = frozenset(
    {
        ProcessingState.READY,
        ProcessingState.FAILED,
        ProcessingState.DELETED,
    }
)

PROCESSING_STATES: frozenset[ProcessingState] = frozenset(
    {
        ProcessingState.VALIDATING,
        ProcessingState.TRANSCODING,
        ProcessingState.EXTRACTING_METADATA,
        ProcessingState.GENERATING_THUMBNAILS,
    }
)

# States a failed video may be reset to by recovery
RECOVERY_TARGETS: frozenset[ProcessingState] = frozenset(
    {ProcessingState.PENDING, ProcessingState.UPLOADED} | PROCESSING_STATES
)
