"""Best-effort notification dispatch to owners and renters."""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from rental_inspections.models.enums import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationDispatcher(ABC):
    """Fire-and-forget; failures never affect workflow state."""

    @abstractmethod
    async def notify(self, event: NotificationEvent, recipients: list[str], payload: dict[str, Any]) -> None:
        pass


class HttpNotificationDispatcher(NotificationDispatcher):
    """Notifications API client."""

    def __init__(self, base_url: str, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def notify(self, event: NotificationEvent, recipients: list[str], payload: dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    f"{self.base_url}/notifications",
                    json={
                        "event": event.value,
                        "recipients": recipients,
                        "data": payload,
                        "sourceApp": "rental-inspections",
                    },
                    timeout=self.timeout,
                )
            if response.status_code not in (200, 201, 202):
                logger.warning(f"[NOTIFY] {event.value} rejected: {response.status_code}")
        except Exception as e:
            logger.error(f"[NOTIFY] {event.value} dispatch error: {e}")
