from .webhook_event import LineEventType as LineEventType
from .webhook_event import WebhookEvent as WebhookEvent

__all__ = ["LineEventType", "WebhookEvent"]
