"""
Raw bridge message event -> MessageRecord.
"""

import time
from typing import Any, Optional

from wa_gateway.errors import ValidationError
from wa_gateway.models.message import MessageKind, MessageRecord
from wa_gateway.validation import is_group_address

MEDIA_TYPES = {"image", "video", "audio", "ptt", "document", "sticker"}

# Epoch values above this are milliseconds (year 5138 in seconds)
_MILLIS_THRESHOLD = 100_000_000_000


def message_id(raw: dict[str, Any]) -> str:
    """Canonical id: the serialized protocol id, then its short form."""
    value = raw.get("id")
    if isinstance(value, dict):
        value = value.get("_serialized") or value.get("id")
    if not value:
        raise ValidationError("Message event has no id", details={"keys": sorted(raw)})
    return str(value)


def short_message_id(message_id: str) -> str:
    """Protocol message id inside a serialized id.

    `false_<chat>_<id>` and the group form `false_<group>_<id>_<participant>`
    both yield `<id>`. Anything else is already bare and returned unchanged.
    """
    parts = message_id.split("_")
    if len(parts) >= 3 and parts[0] in ("true", "false"):
        return parts[2]
    return message_id


def epoch_seconds(value: Any) -> int:
    if value is None or value == "":
        return int(time.time())
    seconds = int(float(value))
    if seconds > _MILLIS_THRESHOLD:
        seconds //= 1000
    return seconds


def message_kind(type_: Optional[str]) -> MessageKind:
    if type_ == "chat":
        return MessageKind.CHAT
    if type_ in MEDIA_TYPES:
        return MessageKind.MEDIA
    return MessageKind.OTHER


def normalize(raw: dict[str, Any]) -> MessageRecord:
    raw_id = raw.get("id")
    from_self = bool(raw.get("fromMe", raw_id.get("fromMe") if isinstance(raw_id, dict) else False))
    from_address = raw.get("from") or ""
    to_address = raw.get("to")

    is_group = raw.get("isGroupMsg")
    if not isinstance(is_group, bool):
        # Older bridges omit the flag; the conversation address carries the group marker
        conversation = raw_id.get("remote") if isinstance(raw_id, dict) else None
        if not conversation:
            conversation = to_address if from_self else from_address
        is_group = is_group_address(conversation)

    notify_name = raw.get("notifyName")
    if notify_name is None and isinstance(raw.get("_data"), dict):
        notify_name = raw["_data"].get("notifyName")

    type_ = raw.get("type") or "unknown"
    return MessageRecord(
        id=message_id(raw),
        from_address=from_address,
        to_address=to_address,
        body=raw.get("body") or "",
        sent_at=epoch_seconds(raw.get("timestamp")),
        kind=message_kind(type_),
        type=type_,
        is_group=is_group,
        author=raw.get("author"),
        author_display_name=notify_name,
        from_self=from_self,
    )
