"""
Gateway — wires config, store, dispatcher, session and auto-responder.
"""

import logging
from typing import Any, Optional

from wa_gateway.config import GatewayConfig
from wa_gateway.dispatcher import MessageDispatcher
from wa_gateway.message_log import MessageLogBuffer
from wa_gateway.models.message import MessageRecord, MessageStats, SearchCriteria
from wa_gateway.models.session import SessionStatus
from wa_gateway.responders import AutoResponder
from wa_gateway.session import SessionManager
from wa_gateway.store import MessageStore
from wa_gateway.transport.base import ClientFactory
from wa_gateway.transport.socketio import socketio_client_factory
from wa_gateway.transport.webhook import WebhookNotifier

logger = logging.getLogger(__name__)


class Gateway:
    """One WhatsApp account exposed as a programmable endpoint."""

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        client_factory: Optional[ClientFactory] = None,
        store: Optional[MessageStore] = None,
        notifier: Optional[WebhookNotifier] = None,
    ):
        self.config = config or GatewayConfig.load()
        self.store = store if store is not None else MessageStore(self.config.database_path)
        if notifier is None and self.config.webhook_url:
            notifier = WebhookNotifier(self.config.webhook_url, timeout=self.config.webhook_timeout)
        self.notifier = notifier

        self.messages = MessageLogBuffer(self.config.log_buffer_size)
        self.dispatcher = MessageDispatcher(self.store, self.messages, notifier=self.notifier)
        self.session = SessionManager(
            self.config,
            client_factory or socketio_client_factory(
                self.config.bridge_url,
                self.config.client_id,
                command_timeout=self.config.command_timeout,
            ),
            self.dispatcher,
            store=self.store,
        )
        self.responders = AutoResponder(
            self.session,
            process_group_messages=self.config.process_group_messages,
        )
        self.session.register_handler(self.responders.process_message)

    async def start(self) -> None:
        await self.session.start()

    async def stop(self) -> None:
        await self.session.stop()

    async def close(self) -> None:
        """Stop the session and release the store and webhook client."""
        try:
            await self.session.stop()
        finally:
            if self.notifier is not None:
                await self.notifier.close()
            self.store.close()

    def status(self) -> SessionStatus:
        return self.session.status()

    def recent(self, limit: int = 50) -> list[MessageRecord]:
        return self.messages.recent(limit)

    def search(self, criteria: Optional[SearchCriteria] = None, **filters: Any) -> list[MessageRecord]:
        return self.messages.search(criteria or SearchCriteria(**filters))

    def stats(self) -> MessageStats:
        stats = self.messages.stats()
        stats.responders_count = len(self.responders)
        stats.enabled_responders = self.responders.enabled_count
        return stats
