"""
Data models for queue messages.
"""

from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClickEvent(BaseModel):
    """
    Event model for click tracking.

    Published to the queue on every successful redirect. The timestamp is
    captured when the redirect happens, not when the worker consumes it.

    Wire format (JSON, camelCase):
        {"urlId": 42, "ipAddress": "203.0.113.9",
         "userAgent": "Mozilla/5.0 ...", "timestamp": "2026-10-17T10:30:00Z"}
    """

    url_id: int = Field(..., description="Durable id of the resolved mapping")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="User agent string")
    timestamp: datetime = Field(default_factory=_utcnow, description="When the redirect occurred")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_payload(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_payload(cls, payload: Union[str, bytes]) -> "ClickEvent":
        """Parse a queue payload. Raises pydantic.ValidationError if malformed."""
        return cls.model_validate_json(payload)


class QueueMessage(BaseModel):
    """
    A delivered message, as handed to a consumer.

    message_id is what the consumer passes back to ack().
    redelivered is True when the message was delivered before but never acked.
    """

    message_id: str
    body: str
    redelivered: bool = False
