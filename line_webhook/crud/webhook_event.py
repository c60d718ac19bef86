import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import case, func, select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from line_webhook.db.models import WebhookEvent

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_PENDING = "pending"

DEFAULT_STATUS_WINDOW = timedelta(hours=24)


class WebhookEventCrud:
    """
    Append-only store for LINE events.

    Every call opens its own session, so each event is an independent unit of
    work and the pooled connection goes back to the pool on every exit path.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], deduplicate: bool = False):
        self.session_factory = session_factory
        self.deduplicate = deduplicate

    async def persist(self, event: dict[str, Any], channel: str) -> uuid.UUID:
        webhook_event_id = event.get("webhookEventId")
        async with self.session_factory() as db:
            if self.deduplicate and webhook_event_id:
                # best effort: two concurrent redeliveries can still both insert
                existing = await db.execute(
                    select(WebhookEvent.id)
                    .where(WebhookEvent.channel == channel)
                    .where(WebhookEvent.webhook_event_id == webhook_event_id)
                    .limit(1)
                )
                existing_id = existing.scalar_one_or_none()
                if existing_id is not None:
                    logger.info(f"Event {webhook_event_id} already stored as {existing_id}, skipping")
                    return existing_id

            row = WebhookEvent(
                channel=channel,
                event_type=event.get("type") or "unknown",
                webhook_event_id=webhook_event_id,
                raw_data=event,
            )
            db.add(row)
            await db.commit()
            logger.info(f"Stored event {webhook_event_id} with ID: {row.id}")
            return row.id

    async def get_by_id(self, event_id: uuid.UUID) -> Optional[WebhookEvent]:
        async with self.session_factory() as db:
            return await db.get(WebhookEvent, event_id)

    async def list_recent(self, limit: int = 10) -> list[WebhookEvent]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(WebhookEvent)
                .order_by(WebhookEvent.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def aggregate_status_counts(self, window: timedelta = DEFAULT_STATUS_WINDOW) -> dict[str, int]:
        """
        Count rows created inside the trailing window per processing status.
        """
        since = datetime.now(timezone.utc) - window
        status = case(
            (WebhookEvent.processed.is_(True) & WebhookEvent.error.is_(None), STATUS_COMPLETED),
            (WebhookEvent.processed.is_(True) & WebhookEvent.error.is_not(None), STATUS_FAILED),
            (WebhookEvent.processed.is_(False), STATUS_PENDING),
        ).label("status")

        async with self.session_factory() as db:
            result = await db.execute(
                select(status, func.count().label("total"))
                .where(WebhookEvent.created_at >= since)
                .group_by(status)
            )
            counts = {STATUS_COMPLETED: 0, STATUS_FAILED: 0, STATUS_PENDING: 0}
            for row in result:
                if row.status in counts:
                    counts[row.status] = int(row.total)
            return counts

    async def check_connection(self) -> str:
        try:
            async with self.session_factory() as db:
                await db.execute(text("SELECT 1"))
            return "connected"
        except Exception as e:
            logger.error(f"Database connection error: {e}")
            return "error"
