"""User-facing video status owned by the video catalogue."""

from enum import Enum


class VideoStatus(str, Enum):
    """Simplified lifecycle status shown on the domain video record."""

    PENDING = "PENDING"  # Created, upload not confirmed
    UPLOADED = "UPLOADED"
    PROCESSING = "PROCESSING"  # Any pipeline step in progress
    READY = "READY"  # Playable
    FAILED = "FAILED"
    DELETED = "DELETED"
