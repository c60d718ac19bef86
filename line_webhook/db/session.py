import logging

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from line_webhook.core.config import get_settings
from line_webhook.db.base import Base
from line_webhook.db.models import WebhookEvent  # noqa: F401  registers the table on Base

logger = logging.getLogger(__name__)

settings = get_settings()

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    # the pool is shared by every request, keep it bounded
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_timeout=settings.DB_POOL_TIMEOUT,
    pool_recycle=3600,
    pool_pre_ping=True
)

async_session_factory = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False
)


async def init_db() -> None:
    """
    Create the webhook table when it does not exist yet.
    Used in development; production runs the migration instead.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("created all tables")


async def close_db() -> None:
    await engine.dispose()
