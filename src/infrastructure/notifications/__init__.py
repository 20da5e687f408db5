"""Workflow notification publishers."""

from src.infrastructure.notifications.base import (
    EventPublisherBase,
    WorkflowNotification,
)
from src.infrastructure.notifications.logging_publisher import LoggingEventPublisher
from src.infrastructure.notifications.webhook_publisher import WebhookEventPublisher

__all__ = [
    # Base classes
    "EventPublisherBase",
    "WorkflowNotification",
    # Implementations
    "LoggingEventPublisher",
    "WebhookEventPublisher",
]
