import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from line_webhook.api.v1 import routes_health, routes_monitoring, routes_webhook
from line_webhook.core.config import get_settings
from line_webhook.core.exceptions import RequestRejectedError
from line_webhook.core.logging import setup_logging
from line_webhook.crud.webhook_event import WebhookEventCrud
from line_webhook.db import session
from line_webhook.services.ingestion import Capabilities, WebhookIngestionService
from line_webhook.services.notifier import BatchNotifier
from line_webhook.services.processor_client import ProcessorClient
from line_webhook.services.signature import SignatureValidator

logger = logging.getLogger(__name__)


def build_ingestion_service(crud: WebhookEventCrud, redis=None) -> WebhookIngestionService:
    settings = get_settings()
    capabilities = Capabilities(
        persist=settings.FEATURE_PERSIST,
        cache_validate=settings.FEATURE_CACHE_VALIDATE,
        notify=settings.FEATURE_NOTIFY,
    )

    validator = SignatureValidator(
        secret=settings.LINE_CHANNEL_SECRET,
        redis=redis if capabilities.cache_validate else None,
        cache_ttl=settings.SIGNATURE_CACHE_TTL_SECONDS,
    )

    notifier = None
    if capabilities.notify:
        processor = ProcessorClient(
            url=settings.PROCESSOR_API_URL,
            api_key=settings.PROCESSOR_API_KEY,
            channel=settings.LINE_CHANNEL_NAME,
            limit=settings.PROCESSOR_BATCH_LIMIT,
            timeout=settings.PROCESSOR_TIMEOUT_SECONDS,
        )
        notifier = BatchNotifier(
            processor.notify,
            delay=settings.NOTIFY_DELAY_SECONDS,
            timeout=settings.PROCESSOR_TIMEOUT_SECONDS,
        )

    return WebhookIngestionService(
        validator=validator,
        channel=settings.LINE_CHANNEL_NAME,
        crud=crud if capabilities.persist else None,
        notifier=notifier,
        capabilities=capabilities,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    if settings.ENV == "development":
        await session.init_db()

    redis = None
    if settings.FEATURE_CACHE_VALIDATE:
        from line_webhook.redis import redis_client
        redis = redis_client

    crud = WebhookEventCrud(session.async_session_factory, deduplicate=settings.DEDUPLICATE_EVENTS)
    service = build_ingestion_service(crud, redis)
    app.state.event_crud = crud
    app.state.ingestion_service = service
    logger.info(f"LINE webhook started with capabilities {service.capabilities.as_dict()}")

    yield

    if service.notifier is not None:
        await service.notifier.shutdown(timeout=settings.SHUTDOWN_TIMEOUT_SECONDS)
    if redis is not None:
        from line_webhook.redis import close_redis
        await close_redis()
    await session.close_db()
    logger.info("LINE webhook stopped")


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        description=settings.PROJECT_DESCRIPTION,
        lifespan=lifespan
    )

    app.include_router(
        routes_health.router,
        prefix=settings.API_V1_PREFIX
    )

    app.include_router(
        routes_webhook.router,
        prefix=settings.API_V1_PREFIX,
        tags=["webhooks"]
    )

    app.include_router(
        routes_monitoring.router,
        prefix=settings.API_V1_PREFIX,
        tags=["monitoring"]
    )

    @app.exception_handler(RequestRejectedError)
    async def webhook_error_handler(request: Request, ex: RequestRejectedError):
        return JSONResponse(status_code=ex.status_code, content={"error": ex.message})

    @app.get("/")
    async def root():
        return {"message": "LINE webhook backend is running"}
    return app


app = create_app()
