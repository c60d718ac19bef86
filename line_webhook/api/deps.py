from fastapi import Request

from line_webhook.crud.webhook_event import WebhookEventCrud
from line_webhook.services.ingestion import WebhookIngestionService


def get_ingestion_service(request: Request) -> WebhookIngestionService:
    return request.app.state.ingestion_service


def get_event_crud(request: Request) -> WebhookEventCrud:
    return request.app.state.event_crud
