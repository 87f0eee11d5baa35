"""
SQLite message store.

Upserts keyed by message id; a redelivered message replaces the stored row
but never clears its processed flag.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Optional, Protocol, Union

from wa_gateway.models.message import MessageKind, MessageRecord
from wa_gateway.normalizer import short_message_id

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS messages (
    id TEXT PRIMARY KEY,
    from_address TEXT NOT NULL,
    to_address TEXT,
    body TEXT,
    timestamp INTEGER,
    type TEXT,
    kind TEXT,
    is_group INTEGER,
    author TEXT,
    notify_name TEXT,
    from_me INTEGER DEFAULT 0,
    processed INTEGER DEFAULT 0,
    short_id TEXT
)
"""

SHORT_ID_INDEX = "CREATE INDEX IF NOT EXISTS idx_messages_short_id ON messages(short_id)"

UPSERT = """
INSERT INTO messages (
    id, from_address, to_address, body, timestamp, type, kind,
    is_group, author, notify_name, from_me, short_id, processed
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0)
ON CONFLICT(id) DO UPDATE SET
    from_address = excluded.from_address,
    to_address = excluded.to_address,
    body = excluded.body,
    timestamp = excluded.timestamp,
    type = excluded.type,
    kind = excluded.kind,
    is_group = excluded.is_group,
    author = excluded.author,
    notify_name = excluded.notify_name,
    from_me = excluded.from_me,
    short_id = excluded.short_id
"""


class PersistenceStore(Protocol):
    def upsert_message(self, record: MessageRecord) -> None: ...
    def mark_processed(self, message_id: str) -> list[str]: ...


class MessageStore:
    """Durable message log backed by a single SQLite file."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        if str(db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute(SCHEMA)
        columns = {row["name"] for row in self._conn.execute("PRAGMA table_info(messages)")}
        if "short_id" not in columns:
            # Databases created before short ids were stored
            self._conn.execute("ALTER TABLE messages ADD COLUMN short_id TEXT")
        self._conn.execute(SHORT_ID_INDEX)
        self._conn.commit()

    def upsert_message(self, record: MessageRecord) -> None:
        with self._conn:
            self._conn.execute(
                UPSERT,
                (
                    record.id,
                    record.from_address,
                    record.to_address,
                    record.body,
                    record.sent_at,
                    record.type,
                    record.kind.value,
                    int(record.is_group),
                    record.author,
                    record.author_display_name,
                    int(record.from_self),
                    short_message_id(record.id),
                ),
            )

    def mark_processed(self, message_id: str) -> list[str]:
        """Flag a message as replied to and return the full ids flagged.

        The serialized id is matched exactly. A bare protocol id (`3EB0C4...`)
        is matched against the stored short ids only when no row has it as
        its full id.
        """
        with self._conn:
            ids = [row["id"] for row in self._conn.execute("SELECT id FROM messages WHERE id = ?", (message_id,))]
            if not ids and short_message_id(message_id) == message_id:
                ids = [
                    row["id"]
                    for row in self._conn.execute("SELECT id FROM messages WHERE short_id = ?", (message_id,))
                ]
            self._conn.executemany("UPDATE messages SET processed = 1 WHERE id = ?", [(i,) for i in ids])
        return ids

    def get(self, message_id: str) -> Optional[MessageRecord]:
        row = self._conn.execute("SELECT * FROM messages WHERE id = ?", (message_id,)).fetchone()
        return self._to_record(row) if row else None

    def recent(self, limit: int = 50) -> list[MessageRecord]:
        rows = self._conn.execute(
            "SELECT * FROM messages ORDER BY timestamp DESC, rowid DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [self._to_record(row) for row in rows]

    def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM messages").fetchone()[0]

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _to_record(row: sqlite3.Row) -> MessageRecord:
        return MessageRecord(
            id=row["id"],
            from_address=row["from_address"],
            to_address=row["to_address"],
            body=row["body"] or "",
            sent_at=row["timestamp"] or 0,
            kind=MessageKind(row["kind"] or MessageKind.OTHER.value),
            type=row["type"] or "unknown",
            is_group=bool(row["is_group"]),
            author=row["author"],
            author_display_name=row["notify_name"],
            from_self=bool(row["from_me"]),
            processed=bool(row["processed"]),
        )
