"""Publisher that writes notifications to the application log."""

from src.commons.telemetry import get_logger
from src.infrastructure.notifications.base import (
    EventPublisherBase,
    WorkflowNotification,
)


class LoggingEventPublisher(EventPublisherBase):
    """Default publisher when no bus is configured."""

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    async def publish(self, notification: WorkflowNotification) -> None:
        self._logger.info(
            "Video workflow reached %s",
            notification.state.value,
            extra={"notification": notification.model_dump(mode="json")},
        )
