"""
Session models — connection state, pairing artifact and status snapshot.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_SCAN = "awaiting_scan"
    AUTHENTICATED = "authenticated"
    READY = "ready"


class SessionEvent(str, Enum):
    """Inputs to the session state machine."""

    CONNECT = "connect"
    QR = "qr"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    AUTH_FAILURE = "auth_failure"
    DISCONNECTED = "disconnected"
    STOP = "stop"


class AuthArtifact(BaseModel):
    """Scannable pairing token and its renderings."""

    payload: str
    data_uri: Optional[str] = None
    terminal: Optional[str] = None
    created_at: datetime


class SessionStatus(BaseModel):
    state: SessionState
    is_ready: bool
    has_auth_artifact: bool
    handler_count: int
    as_of: datetime


class ClientInfo(BaseModel):
    phone_number: Optional[str] = None
    platform: Optional[str] = None
    pushname: Optional[str] = None
    connected: bool = False
    last_seen: datetime


class LastMessage(BaseModel):
    id: str
    body: Optional[str] = None
    timestamp: Optional[int] = None


class Conversation(BaseModel):
    id: str
    name: Optional[str] = None
    is_group: bool = False
    unread_count: int = 0
    timestamp: Optional[int] = None
    archived: Optional[bool] = None
    pinned: Optional[bool] = None
    is_muted: Optional[bool] = None
    mute_expiration: Optional[int] = None
    last_message: Optional[LastMessage] = None

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "Conversation":
        """Build from a bridge chat object (`id` may be nested)."""
        last = raw.get("lastMessage")
        return cls(
            id=_serialized_id(raw.get("id")),
            name=raw.get("name"),
            is_group=bool(raw.get("isGroup", False)),
            unread_count=raw.get("unreadCount") or 0,
            timestamp=raw.get("timestamp"),
            archived=raw.get("archived"),
            pinned=raw.get("pinned"),
            is_muted=raw.get("isMuted"),
            mute_expiration=raw.get("muteExpiration"),
            last_message=LastMessage(
                id=_serialized_id(last.get("id")),
                body=last.get("body"),
                timestamp=last.get("timestamp"),
            ) if isinstance(last, dict) else None,
        )


def _serialized_id(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("_serialized") or value.get("id") or "")
    return str(value or "")
