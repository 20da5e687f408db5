"""Publisher that POSTs notifications to an HTTP endpoint."""

import httpx

from src.infrastructure.notifications.base import (
    EventPublisherBase,
    WorkflowNotification,
)


class WebhookEventPublisher(EventPublisherBase):
    """Delivers each notification as a JSON POST.

    The expected endpoint contract:
    POST {url}
    Body: WorkflowNotification as JSON
    Response: any 2xx
    """

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the webhook client.

        Args:
            url: Endpoint receiving notifications.
            timeout: Request timeout in seconds.
            client: Optional preconfigured client (e.g. with a mock transport).
        """
        self._url = url
        self._client = client or httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout),
        )

    async def publish(self, notification: WorkflowNotification) -> None:
        response = await self._client.post(
            self._url,
            json=notification.model_dump(mode="json"),
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
