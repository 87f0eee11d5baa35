"""
Bounded in-memory log of recently processed messages.
"""

import time
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Optional

from wa_gateway.models.message import MessageRecord, MessageStats, SearchCriteria
from wa_gateway.normalizer import short_message_id

DEFAULT_LOG_SIZE = 1000


class MessageLogBuffer:
    """Last N records keyed by id, oldest evicted first.

    Redelivery of a known id replaces the entry where it stands, so the
    buffer never holds two copies of one message.
    """

    def __init__(self, max_size: int = DEFAULT_LOG_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._entries: "OrderedDict[str, MessageRecord]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._entries

    def append(self, record: MessageRecord) -> None:
        self._entries[record.id] = record
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    def get(self, message_id: str) -> Optional[MessageRecord]:
        return self._entries.get(message_id)

    def mark_processed(self, message_id: str) -> list[str]:
        """Flag by full id, or by bare protocol id when no full id matches."""
        if message_id in self._entries:
            ids = [message_id]
        elif short_message_id(message_id) == message_id:
            ids = [key for key in self._entries if short_message_id(key) == message_id]
        else:
            ids = []
        for key in ids:
            self._entries[key] = self._entries[key].model_copy(update={"processed": True})
        return ids

    def recent(self, limit: int = 50) -> list[MessageRecord]:
        """Newest `limit` records, oldest first."""
        if limit <= 0:
            return []
        return list(self._entries.values())[-limit:]

    def search(self, criteria: Optional[SearchCriteria] = None) -> list[MessageRecord]:
        c = criteria or SearchCriteria()
        after = c.after.timestamp() if c.after else None
        before = c.before.timestamp() if c.before else None
        body = c.body.lower() if c.body else None

        results = []
        for msg in self._entries.values():
            if c.from_address and c.from_address not in msg.from_address:
                continue
            if body and body not in msg.body.lower():
                continue
            if c.type and msg.type != c.type:
                continue
            if c.is_group is not None and msg.is_group != c.is_group:
                continue
            if after is not None and msg.sent_at < after:
                continue
            if before is not None and msg.sent_at > before:
                continue
            results.append(msg)
        return results

    def stats(self, now: Optional[float] = None) -> MessageStats:
        now = time.time() if now is None else now
        by_type: dict[str, int] = {}
        by_hour = [0] * 24
        recent_24h = 0
        for msg in self._entries.values():
            by_type[msg.type] = by_type.get(msg.type, 0) + 1
            by_hour[datetime.fromtimestamp(msg.sent_at).hour] += 1
            if msg.sent_at > now - 24 * 60 * 60:
                recent_24h += 1

        last = next(reversed(self._entries.values()), None)
        return MessageStats(
            total_messages=len(self._entries),
            messages_by_type=by_type,
            messages_by_hour=by_hour,
            recent_messages_24h=recent_24h,
            last_message_at=datetime.fromtimestamp(last.sent_at, tz=timezone.utc) if last else None,
        )
