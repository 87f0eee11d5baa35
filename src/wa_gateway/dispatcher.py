"""
Message dispatcher — fan-out of each normalized record.

Order per record: persist, webhook (not for our own messages), log buffer,
then every handler in registration order. Collaborator and handler failures
are logged and never stop the remaining steps.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from wa_gateway.errors import ValidationError
from wa_gateway.message_log import MessageLogBuffer
from wa_gateway.models.message import MessageRecord
from wa_gateway.store import PersistenceStore
from wa_gateway.transport.webhook import WebhookNotifier

logger = logging.getLogger(__name__)

MessageHandler = Callable[[MessageRecord], Union[None, Awaitable[None]]]

PREVIEW_CHARS = 50


def preview(body: str, limit: int = PREVIEW_CHARS) -> str:
    return body[:limit] + ("..." if len(body) > limit else "")


class MessageDispatcher:
    def __init__(
        self,
        store: Optional[PersistenceStore],
        log: MessageLogBuffer,
        notifier: Optional[WebhookNotifier] = None,
        handlers: Optional[list[MessageHandler]] = None,
    ):
        self.store = store
        self.log = log
        self.notifier = notifier
        self.handlers: list[MessageHandler] = handlers if handlers is not None else []

    def add_handler(self, handler: Any) -> None:
        if not callable(handler):
            raise ValidationError("Handler must be callable")
        self.handlers.append(handler)
        logger.info("Message handler registered (%d total)", len(self.handlers))

    async def dispatch(self, record: MessageRecord) -> None:
        if self.store is not None:
            try:
                self.store.upsert_message(record)
            except Exception:
                logger.exception("Failed to save message %s", record.id)

        if not record.from_self:
            logger.info(
                "Incoming message from %s type=%s group=%s: %s",
                record.from_address, record.type, record.is_group, preview(record.body),
            )
            if self.notifier is not None:
                try:
                    await self.notifier.notify(record)
                except Exception as e:
                    logger.error("Failed to send webhook to %s: %s", self.notifier.url, e)

        self.log.append(record)

        for handler in list(self.handlers):
            try:
                result = handler(record)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Message handler %r failed", getattr(handler, "__name__", handler))
