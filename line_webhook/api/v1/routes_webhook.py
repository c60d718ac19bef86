import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from line_webhook.api.deps import get_ingestion_service
from line_webhook.api.v1.routes_health import build_health
from line_webhook.schemas.monitoring import ErrorResponse, HealthResponse, WebhookAck
from line_webhook.services.ingestion import WebhookIngestionService

router = APIRouter(prefix="/webhooks")
logger = logging.getLogger(__name__)


@router.post(
    "/line",
    response_model=WebhookAck,
    responses={401: {"model": ErrorResponse}, 400: {"model": ErrorResponse}},
)
async def line_webhook(
    request: Request,
    x_line_signature: Optional[str] = Header(None, alias="x-line-signature"),
    service: WebhookIngestionService = Depends(get_ingestion_service),
):
    """
    Receive a LINE webhook delivery.

    The signature is checked against the exact raw bytes, so the body is read
    before anything parses it. LINE expects an answer within a second; the
    processor notification runs in the background and is never awaited here.
    """
    body = await request.body()
    logger.info(f"Received LINE webhook, body length: {len(body)}")

    result = await service.ingest(body, x_line_signature)
    logger.info(
        f"Webhook handled: received={result.received} stored={result.stored} "
        f"failed={result.failed} notified={result.notified}")
    return WebhookAck(success=True)


@router.get("/line", response_model=HealthResponse)
async def line_webhook_health(service: WebhookIngestionService = Depends(get_ingestion_service)):
    return await build_health(service)
