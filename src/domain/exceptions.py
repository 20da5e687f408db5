"""Domain exceptions for the video processing workflow."""


class DomainException(Exception):
    """Base exception for domain errors."""


class StateRecordNotFoundException(DomainException):
    """Raised when a workflow state record is required but missing."""

    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(f"No workflow state recorded for video {entity_id}")


class ConcurrentModificationException(DomainException):
    """Raised when a state record was changed by someone else since it was read."""

    def __init__(self, entity_id: str, expected_version: int) -> None:
        self.entity_id = entity_id
        self.expected_version = expected_version
        super().__init__(
            f"State record for video {entity_id} was modified concurrently "
            f"(expected version {expected_version})"
        )


class StateStoreException(DomainException):
    """Raised when the state record store cannot be reached or times out."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"State store {operation} failed: {reason}")

