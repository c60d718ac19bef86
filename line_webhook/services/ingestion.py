import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from line_webhook.core.exceptions import InvalidPayloadError, InvalidSignatureError
from line_webhook.crud.webhook_event import WebhookEventCrud
from line_webhook.schemas.line import LineEvent, LineWebhookPayload
from line_webhook.services.notifier import BatchNotifier
from line_webhook.services.signature import SignatureValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Capabilities:
    persist: bool = True
    cache_validate: bool = False
    notify: bool = True

    def as_dict(self) -> dict[str, bool]:
        return {"persist": self.persist, "cacheValidate": self.cache_validate, "notify": self.notify}


@dataclass
class IngestResult:
    received: int = 0
    stored: int = 0
    failed: int = 0
    notified: bool = False
    tolerated_error: Optional[str] = None


class WebhookIngestionService:
    """
    validate signature -> parse envelope -> store every event -> signal the notifier.

    Only a bad signature or an unparseable body is reported back to LINE.
    Anything that goes wrong after authentication is logged and swallowed,
    because a non-2xx answer makes LINE redeliver the whole batch.
    """

    def __init__(self, validator: SignatureValidator, channel: str,
                 crud: Optional[WebhookEventCrud] = None,
                 notifier: Optional[BatchNotifier] = None,
                 capabilities: Capabilities = Capabilities()):
        if capabilities.persist and crud is None:
            raise ValueError("persist capability needs a WebhookEventCrud")
        if capabilities.notify and notifier is None:
            raise ValueError("notify capability needs a BatchNotifier")
        self.validator = validator
        self.channel = channel
        self.crud = crud
        self.notifier = notifier
        self.capabilities = capabilities

    async def ingest(self, body: bytes, signature: Optional[str]) -> IngestResult:
        if not await self.validator.validate(body, signature):
            logger.error("Invalid webhook signature")
            raise InvalidSignatureError()

        payload = self._parse(body)

        result = IngestResult(received=len(payload.events))
        try:
            await self._handle_events(payload, result)
        except Exception as e:
            logger.exception(f"Webhook processing error: {e}")
            result.tolerated_error = str(e)
        return result

    def _parse(self, body: bytes) -> LineWebhookPayload:
        try:
            return LineWebhookPayload.model_validate(json.loads(body, parse_constant=_reject_constant))
        except (ValueError, RecursionError, ValidationError) as e:
            logger.error(f"Invalid JSON payload: {e}")
            raise InvalidPayloadError()

    async def _handle_events(self, payload: LineWebhookPayload, result: IngestResult):
        logger.info(f"Processing {len(payload.events)} events from LINE (destination: {payload.destination})")

        if not self.capabilities.persist:
            for event in payload.events:
                logger.info(f"Received event: {json.dumps(event, ensure_ascii=False)}")
            return

        outcomes = await asyncio.gather(*(self._store(event) for event in payload.events))
        result.stored = sum(1 for ok in outcomes if ok)
        result.failed = len(outcomes) - result.stored

        if result.stored > 0:
            logger.info(f"Successfully stored {result.stored} events")
            if self.capabilities.notify:
                await self.notifier.signal()
                result.notified = True

    async def _store(self, event: Any) -> bool:
        if not isinstance(event, dict):
            logger.error(f"Skipping event that is not an object: {event!r:.100}")
            return False

        event_id = _describe(event)
        try:
            await self.crud.persist(event, self.channel)
            return True
        except Exception as e:
            logger.error(f"Failed to store event {event_id}: {e}", exc_info=True)
            return False


def _reject_constant(token: str):
    # NaN and Infinity are not JSON, and JSONB refuses them
    raise ValueError(f"Invalid JSON constant {token}")


def _describe(event: dict[str, Any]) -> str:
    try:
        view = LineEvent.model_validate(event)
    except ValidationError:
        return "<unknown>"
    label = f"{view.webhookEventId} ({view.type})"
    if view.is_redelivery:
        label += " [redelivery]"
    return label
