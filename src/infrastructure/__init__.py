"""Infrastructure layer - external service implementations.

The wiring lives in ``src.infrastructure.factory``; it is not re-exported
here because it depends on the application layer.
"""

from src.infrastructure.notifications import (
    EventPublisherBase,
    LoggingEventPublisher,
    WebhookEventPublisher,
    WorkflowNotification,
)
from src.infrastructure.persistence import (
    DocumentDBStateRecordStore,
    InMemoryStateRecordStore,
    StateRecordStoreBase,
)
from src.infrastructure.videos import DocumentDBVideoRepository, VideoRepositoryBase

__all__ = [
    # Persistence
    "StateRecordStoreBase",
    "DocumentDBStateRecordStore",
    "InMemoryStateRecordStore",
    # Video catalogue
    "VideoRepositoryBase",
    "DocumentDBVideoRepository",
    # Notifications
    "EventPublisherBase",
    "WorkflowNotification",
    "LoggingEventPublisher",
    "WebhookEventPublisher",
]
