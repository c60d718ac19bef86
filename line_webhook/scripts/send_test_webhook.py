"""
Send a signed sample LINE delivery to a running instance.

Run with: python -m line_webhook.scripts.send_test_webhook [url]
"""
import asyncio
import json
import logging
import sys
import time
import uuid
from typing import Optional

import httpx

from line_webhook.core.config import get_settings
from line_webhook.core.logging import setup_logging
from line_webhook.services.signature import compute_signature

logger = logging.getLogger("line_webhook.scripts.send_test_webhook")

DEFAULT_URL = "http://localhost:8000/api/v1/webhooks/line"


def build_test_payload() -> dict:
    now_ms = int(time.time() * 1000)
    return {
        "destination": "U1234567890abcdef1234567890abcdef",
        "events": [
            {
                "type": "message",
                "mode": "active",
                "timestamp": now_ms,
                "source": {"type": "user", "userId": "U1234567890abcdef1234567890abcdef"},
                "webhookEventId": f"test-{now_ms}-{uuid.uuid4().hex[:9]}",
                "deliveryContext": {"isRedelivery": False},
                "replyToken": "test-reply-token",
                "message": {"id": f"msg-{now_ms}", "type": "text", "text": "Test message from webhook tester"},
            }
        ],
    }


async def send_test_webhook(url: str, secret: str,
                            transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.Response:
    body = json.dumps(build_test_payload()).encode()
    headers = {
        "content-type": "application/json",
        "x-line-signature": compute_signature(body, secret),
    }
    async with httpx.AsyncClient(timeout=10.0, transport=transport) as client:
        response = await client.post(url, content=body, headers=headers)
    logger.info(f"Status: {response.status_code} Body: {response.text}")
    return response


async def main():
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    url = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_URL
    await send_test_webhook(url, settings.LINE_CHANNEL_SECRET)


if __name__ == "__main__":
    asyncio.run(main())
