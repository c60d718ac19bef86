import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from line_webhook.db.base import Base


class LineEventType(str, Enum):
    MESSAGE = "message"
    FOLLOW = "follow"
    UNFOLLOW = "unfollow"
    JOIN = "join"
    LEAVE = "leave"
    MEMBER_JOINED = "memberJoined"
    MEMBER_LEFT = "memberLeft"
    POSTBACK = "postback"
    VIDEO_PLAY_COMPLETE = "videoPlayComplete"


class WebhookEvent(Base):
    """
    One inbound LINE event, stored verbatim for the processor to consume.
    processed, processed_at and error belong to the processor; this service only inserts.
    """
    __tablename__ = "line_webhook_events"
    __table_args__ = (
        Index("ix_line_webhook_events_channel_event_id", "channel", "webhook_event_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    channel: Mapped[str] = mapped_column(String(100), nullable=False)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    # not unique: LINE redeliveries are stored again unless deduplication is turned on
    webhook_event_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    raw_data: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False, index=True)
