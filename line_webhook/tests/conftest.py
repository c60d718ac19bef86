import json

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from line_webhook.api.deps import get_event_crud, get_ingestion_service
from line_webhook.app import create_app
from line_webhook.crud.webhook_event import WebhookEventCrud
from line_webhook.db.base import Base
from line_webhook.services.ingestion import Capabilities, WebhookIngestionService
from line_webhook.services.signature import SignatureValidator, compute_signature

CHANNEL_SECRET = "test-channel-secret"
CHANNEL = "line_test"


class RecordingNotifier:
    """Stands in for BatchNotifier and only counts signals."""

    def __init__(self, error: Exception = None):
        self.signals = 0
        self.error = error

    async def signal(self) -> bool:
        self.signals += 1
        if self.error is not None:
            raise self.error
        return self.signals == 1


def make_event(index: int = 0, event_type: str = "message", **extra) -> dict:
    event = {
        "type": event_type,
        "mode": "active",
        "timestamp": 1700000000000 + index,
        "source": {"type": "user", "userId": f"U{index:032d}"},
        "webhookEventId": f"01HTEST{index:019d}",
        "deliveryContext": {"isRedelivery": False},
        "replyToken": f"reply-token-{index}",
        "message": {"id": str(1000 + index), "type": "text", "text": f"hello {index}"},
    }
    event.update(extra)
    return event


def make_body(events: list, destination: str = "Udeadbeef") -> bytes:
    return json.dumps({"destination": destination, "events": events}).encode()


def sign(body: bytes, secret: str = CHANNEL_SECRET) -> str:
    return compute_signature(body, secret)


@pytest.fixture
async def db_engine(tmp_path):
    """File backed SQLite so concurrent sessions see the same tables."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'webhook_test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def db_session_factory(db_engine):
    return async_sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def event_crud(db_session_factory):
    return WebhookEventCrud(db_session_factory)


@pytest.fixture
def recording_notifier():
    return RecordingNotifier()


@pytest.fixture
def validator():
    return SignatureValidator(secret=CHANNEL_SECRET)


@pytest.fixture
def ingestion_service(validator, event_crud, recording_notifier):
    return WebhookIngestionService(
        validator=validator,
        channel=CHANNEL,
        crud=event_crud,
        notifier=recording_notifier,
        capabilities=Capabilities(persist=True, cache_validate=False, notify=True),
    )


@pytest.fixture
def app_factory(event_crud):
    """Build the FastAPI app around a given ingestion service."""
    def _build(service):
        app = create_app()
        app.dependency_overrides[get_ingestion_service] = lambda: service
        app.dependency_overrides[get_event_crud] = lambda: event_crud
        return app
    return _build


@pytest.fixture
async def client(app_factory, ingestion_service):
    app = app_factory(ingestion_service)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c
