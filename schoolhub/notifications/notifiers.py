import logging

import httpx
from django.conf import settings
from django.utils.module_loading import import_string

from core.exceptions import NotifierError, TransientDeliveryError

logger = logging.getLogger(__name__)


class BaseNotifier:
    def send(self, recipient_ids: list[int], title: str, body: str, type: str = "Notification", metadata=None) -> None:
        raise NotImplementedError


class ConsoleNotifier(BaseNotifier):
    def send(self, recipient_ids, title, body, type="Notification", metadata=None) -> None:
        logger.info(
            "[PUSH %s to %d users] %s: %s %s",
            type, len(recipient_ids), title, body, metadata or {},
        )


class WebhookNotifier(BaseNotifier):
    """
    Posts one JSON message per broadcast to an HTTP push gateway.

    Unreachable or slow gateways raise TransientDeliveryError so callers can keep
    the stored notification; any other bad response raises NotifierError.
    """

    def __init__(self, endpoint: str | None = None, server_key: str | None = None,
                 timeout: float | None = None, client: httpx.Client | None = None):
        self.endpoint = endpoint if endpoint is not None else settings.PUSH_ENDPOINT_URL
        self.server_key = server_key if server_key is not None else settings.PUSH_SERVER_KEY
        self.timeout = timeout if timeout is not None else settings.PUSH_TIMEOUT
        self._client = client

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.server_key:
            headers["Authorization"] = f"key={self.server_key}"
        return headers

    def send(self, recipient_ids, title, body, type="Notification", metadata=None) -> None:
        if not recipient_ids:
            return
        if not self.endpoint:
            raise TransientDeliveryError("Push endpoint is not configured.")

        payload = {
            "registration_ids": list(recipient_ids),
            "title": title,
            "body": body,
            "type": type,
            "data": dict(metadata or {}),
        }
        client = self._client or httpx.Client(timeout=httpx.Timeout(self.timeout))
        try:
            response = client.post(self.endpoint, json=payload, headers=self._headers())
        except httpx.TransportError as exc:
            raise TransientDeliveryError(f"Push endpoint unreachable: {exc}") from exc
        finally:
            if self._client is None:
                client.close()

        if response.status_code >= 400:
            raise NotifierError(f"Push endpoint returned HTTP {response.status_code}")
        logger.info("Push accepted for %d users (status=%s)", len(payload["registration_ids"]), response.status_code)


def get_notifier() -> BaseNotifier:
    return import_string(settings.NOTIFICATION_BACKEND)()
