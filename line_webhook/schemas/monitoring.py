import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WebhookAck(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str
    timestamp: datetime
    database: str
    capabilities: dict[str, bool]
    batchDelaySeconds: float


class EventSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: uuid.UUID
    channel: str
    type: str = Field(validation_alias="event_type")
    processed: bool
    createdAt: datetime = Field(validation_alias="created_at")
    processedAt: Optional[datetime] = Field(default=None, validation_alias="processed_at")
    error: Optional[str] = None


class MonitoringStatusResponse(BaseModel):
    timestamp: datetime
    stats: dict[str, int]
    recentEvents: list[EventSummary]
