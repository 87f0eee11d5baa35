"""
Webhook notifier — POSTs each inbound message to a configured URL.

One attempt per message with a hard timeout. Failures are logged by the
caller's policy and never retried.
"""

import logging
from typing import Any, Optional

import httpx

from wa_gateway.errors import GatewayError
from wa_gateway.models.message import MessageRecord

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 5.0


def build_payload(record: MessageRecord) -> dict[str, Any]:
    return {"event": "message", "payload": record.webhook_payload()}


class WebhookNotifier:
    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT_S,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": "wa-gateway/0.1.0", "Content-Type": "application/json"},
            timeout=timeout,
        )
        self._timeout = timeout

    async def notify(self, record: MessageRecord) -> None:
        """Send the message envelope. Raises GatewayError on any failure."""
        try:
            resp = await self._client.post(self.url, json=build_payload(record), timeout=self._timeout)
        except httpx.HTTPError as e:
            raise GatewayError("webhook_error", f"Webhook request failed: {e!r}") from e
        if resp.status_code >= 400:
            raise GatewayError("webhook_error", f"HTTP {resp.status_code}: {resp.text[:200]}")
        logger.info("Webhook sent for message %s (fromMe=%s)", record.id, record.from_self)

    async def close(self) -> None:
        await self._client.aclose()
