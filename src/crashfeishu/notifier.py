"""Feishu webhook notifier for process crash alerts.

This module provides:
- Notifier: Protocol consumed by the event listener
- FeishuNotifier: Posts text messages to a Feishu custom bot webhook
"""

import logging
from typing import Protocol

import httpx

from crashfeishu.errors import NotifyError

logger = logging.getLogger(__name__)

__all__ = [
    "FeishuNotifier",
    "Notifier",
    "NotifyError",
]


class Notifier(Protocol):
    """Protocol for alert sinks (DI for testing)."""

    def notify(self, message: str) -> None:
        """Deliver message. Raises NotifyError on failure."""
        ...


class FeishuNotifier:
    """Client for a Feishu (Lark) custom bot webhook.

    Attributes:
        webhook: Webhook URL.
        timeout: Request timeout in seconds, or None to wait indefinitely.
    """

    def __init__(
        self,
        webhook: str,
        http_client: httpx.Client | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize Feishu notifier.

        Args:
            webhook: Webhook URL.
            http_client: Optional httpx client (for DI).
            timeout: Request timeout in seconds, None for no timeout.
        """
        self.webhook = webhook
        self.timeout = timeout
        self.http_client = http_client
        self._owns_client = False

    def __enter__(self) -> "FeishuNotifier":
        """Enter context, creating http client if needed."""
        if self.http_client is None:
            self.http_client = httpx.Client(timeout=self.timeout)
            self._owns_client = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context, closing http client if we own it."""
        if self._owns_client and self.http_client:
            self.http_client.close()
            self.http_client = None
            self._owns_client = False

    def _build_payload(self, message: str) -> dict:
        """Build the webhook text message body."""
        return {"msg_type": "text", "content": {"text": message}}

    def notify(self, message: str) -> None:
        """Post message to the webhook.

        Args:
            message: Alert text.

        Raises:
            NotifyError: On transport failure, non-2xx status or missing
                http client.
        """
        if self.http_client is None:
            raise NotifyError("HTTP client not initialized")

        try:
            response = self.http_client.post(
                self.webhook,
                json=self._build_payload(message),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise NotifyError(f"Failed to send: {e}") from e

        if not response.is_success:
            raise NotifyError(f"{response.status_code} {response.text}")

        # Feishu reports rejected messages (keyword check, rate limit) in a 200 body
        code = self._response_code(response)
        if code:
            raise NotifyError(f"Feishu returned code {code}: {response.text}")

        logger.debug("Feishu accepted message: %s", response.text[:100])

    def _response_code(self, response: httpx.Response) -> int:
        """Extract the Feishu status code from a JSON response body."""
        try:
            body = response.json()
        except ValueError:
            return 0
        if not isinstance(body, dict):
            return 0
        code = body.get("code", body.get("StatusCode", 0))
        return code if isinstance(code, int) else 0
