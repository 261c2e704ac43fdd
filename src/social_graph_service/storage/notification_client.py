"""
HTTP client for a remote notification service.

Used as the emitter's sink when notifications live in a separate service
(``SOCIAL_NOTIFICATIONS_SERVICE_URL``). Speaks the same
``POST /api/notifications`` contract this service exposes. Makes exactly one
request per append; retrying is the caller's decision and the emitter never
retries.
"""

import logging

import httpx

from ..errors import StoreUnavailableError
from ..models.notification import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationServiceClient:
    """Append-only client for a remote notification log."""

    def __init__(self, base_url: str, timeout: float = 5.0, client: httpx.AsyncClient | None = None):
        """
        Args:
            base_url: Root URL of the notification service (e.g. http://notifications:8000)
            timeout: Per-request timeout in seconds
            client: Optional preconfigured httpx client (tests, shared pools)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def append(self, event: NotificationEvent) -> NotificationEvent:
        """
        POST one notification event.

        Raises:
            StoreUnavailableError: On timeout, transport error or non-2xx status
        """
        payload = {
            "recipientId": event.recipient_id,
            "actorId": event.actor_id,
            "kind": event.kind.value,
            "actorUsername": event.actor_username,
        }

        try:
            response = await self._client.post("/api/notifications", json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise StoreUnavailableError(f"Notification service timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise StoreUnavailableError(f"Notification service returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise StoreUnavailableError(f"Notification service unreachable: {e}") from e

        data = response.json()
        return NotificationEvent(
            id=data.get("id"),
            recipient_id=event.recipient_id,
            actor_id=event.actor_id,
            kind=event.kind,
            actor_username=event.actor_username,
            created_at=event.created_at,
            is_read=bool(data.get("isRead", False)),
        )

    async def close(self) -> None:
        await self._client.aclose()
