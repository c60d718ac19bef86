from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class LineSource(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    userId: Optional[str] = None
    groupId: Optional[str] = None
    roomId: Optional[str] = None


class LineEvent(BaseModel):
    """
    Read-only view of a LINE event used for logging.
    The stored row always keeps the original dict, never a dump of this model.
    """
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    mode: Optional[str] = None
    timestamp: Optional[int] = None
    webhookEventId: Optional[str] = None
    source: Optional[LineSource] = None
    deliveryContext: Optional[dict[str, Any]] = None
    replyToken: Optional[str] = None

    @property
    def is_redelivery(self) -> bool:
        return bool((self.deliveryContext or {}).get("isRedelivery"))


class LineWebhookPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    destination: Optional[str] = None
    # elements are checked one by one when stored, so one bad entry does not reject the delivery
    events: list[Any] = Field(default_factory=list)
