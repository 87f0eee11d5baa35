"""
Message models — normalized records, send results and search criteria.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class MessageKind(str, Enum):
    CHAT = "chat"
    MEDIA = "media"
    OTHER = "other"


class MessageRecord(BaseModel):
    """Canonical message record. `sent_at` is epoch seconds."""

    id: str
    from_address: str
    to_address: Optional[str] = None
    body: str = ""
    sent_at: int
    kind: MessageKind = MessageKind.OTHER
    type: str = "unknown"
    is_group: bool = False
    author: Optional[str] = None
    author_display_name: Optional[str] = None
    from_self: bool = False
    processed: bool = False

    def webhook_payload(self) -> dict[str, Any]:
        """Record-shaped fields in the webhook's wire naming."""
        return {
            "id": self.id,
            "from": self.from_address,
            "to": self.to_address,
            "body": self.body,
            "timestamp": self.sent_at,
            "fromMe": self.from_self,
            "isGroupMsg": self.is_group,
            "author": self.author,
            "notifyName": self.author_display_name,
            "type": self.type,
        }


class SendResult(BaseModel):
    success: bool
    id: Optional[str] = None
    sent_at: Optional[int] = None
    to: Optional[str] = None
    original_address: Optional[str] = None
    body: Optional[str] = None
    country_code: Optional[str] = None
    note: Optional[str] = None
    error: Optional[str] = None


class SearchCriteria(BaseModel):
    from_address: Optional[str] = None
    body: Optional[str] = None
    type: Optional[str] = None
    is_group: Optional[bool] = None
    after: Optional[datetime] = None
    before: Optional[datetime] = None


class MessageStats(BaseModel):
    total_messages: int = 0
    messages_by_type: dict[str, int] = {}
    messages_by_hour: list[int] = [0] * 24
    recent_messages_24h: int = 0
    last_message_at: Optional[datetime] = None
    responders_count: int = 0
    enabled_responders: int = 0
