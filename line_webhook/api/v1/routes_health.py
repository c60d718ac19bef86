from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from line_webhook.api.deps import get_ingestion_service
from line_webhook.core.config import get_settings
from line_webhook.schemas.monitoring import HealthResponse
from line_webhook.services.ingestion import WebhookIngestionService

router = APIRouter()


async def build_health(service: WebhookIngestionService) -> HealthResponse:
    database = "unknown"
    if service.crud is not None:
        database = await service.crud.check_connection()

    settings = get_settings()
    return HealthResponse(
        service=settings.PROJECT_NAME,
        timestamp=datetime.now(timezone.utc),
        database=database,
        capabilities=service.capabilities.as_dict(),
        batchDelaySeconds=settings.NOTIFY_DELAY_SECONDS,
    )


@router.get("/health", response_model=HealthResponse, summary="Health check with database connectivity")
async def health_check(service: WebhookIngestionService = Depends(get_ingestion_service)):
    return await build_health(service)
