"""Webhook integration for stock alerts."""

import logging

import httpx

from shopzap.config import settings

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """Posts plain-text alerts to a chat webhook (Slack-style "text" or Discord "content")."""

    def __init__(
        self,
        webhook_url: str | None = None,
        payload_key: str | None = None,
        timeout: float | None = None,
    ):
        self.webhook_url = settings.webhook_url if webhook_url is None else webhook_url
        self.payload_key = payload_key or settings.webhook_payload_key
        self.timeout = timeout or settings.webhook_timeout_seconds
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self):
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def notify(self, message: str) -> bool:
        """
        Send a message to the webhook.

        Args:
            message: Alert text

        Returns:
            True if the webhook accepted the message, False otherwise
        """
        if not self.webhook_url:
            logger.warning("WEBHOOK_URL not configured. Skipping stock alert.")
            return False

        try:
            client = await self._get_client()
            response = await client.post(self.webhook_url, json={self.payload_key: message})
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to send stock alert: {e}")
            return False

        logger.info(f"Stock alert sent ({response.status_code})")
        return True
