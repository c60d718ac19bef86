import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from line_webhook.api.deps import get_event_crud
from line_webhook.crud.webhook_event import WebhookEventCrud
from line_webhook.schemas.monitoring import EventSummary, MonitoringStatusResponse

router = APIRouter(prefix="/monitoring")
logger = logging.getLogger(__name__)


@router.get("/status", response_model=MonitoringStatusResponse)
async def monitoring_status(
    limit: int = Query(default=10, ge=1, le=100),
    crud: WebhookEventCrud = Depends(get_event_crud),
):
    """Status counts over the last 24 hours plus the most recent events."""
    try:
        stats = await crud.aggregate_status_counts()
        recent_events = await crud.list_recent(limit)
    except Exception as e:
        logger.error(f"Error getting monitoring data: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Failed to retrieve monitoring data"})

    return MonitoringStatusResponse(
        timestamp=datetime.now(timezone.utc),
        stats=stats,
        recentEvents=[EventSummary.model_validate(event) for event in recent_events],
    )
