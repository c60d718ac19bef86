import logging
from typing import Any, Optional

import httpx

from line_webhook.core.exceptions import ProcessorNotificationError

logger = logging.getLogger(__name__)


class ProcessorClient:
    """Tells the downstream processor that new events are waiting in the store."""

    def __init__(self, url: str, api_key: str, channel: str, limit: int = 50,
                 timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.api_key = api_key
        self.channel = channel
        self.limit = limit
        self.timeout = timeout
        self.transport = transport

    async def notify(self) -> dict[str, Any]:
        payload = {
            "channel": self.channel,
            "limit": self.limit,
            "apiKey": self.api_key,
        }
        logger.info("Notifying processor to process events...")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise ProcessorNotificationError(f"Failed to reach processor: {e}") from e

        try:
            result = response.json()
        except ValueError:
            result = {}
        if not isinstance(result, dict):
            result = {}

        if not response.is_success:
            raise ProcessorNotificationError(
                f"Processor returned {response.status_code}: {result.get('error', 'Unknown error')}")

        logger.info(f"Processor processed {result.get('processed', 0)} events successfully")
        if result.get("failed"):
            logger.warning(f"Processor failed to process {result['failed']} events")
        return result
