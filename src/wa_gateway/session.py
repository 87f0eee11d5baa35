"""
Session lifecycle manager — owns the single messaging client of the process.

Raw client events drive the state machine in `wa_gateway.state`. Inbound
messages are normalized and handed to the dispatcher one at a time.
"""

import asyncio
import inspect
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from wa_gateway.config import GatewayConfig
from wa_gateway.dispatcher import MessageDispatcher, preview
from wa_gateway.errors import ClientError, NotReadyError, SessionError, ValidationError
from wa_gateway.locks import reconcile_locks
from wa_gateway.models.events import ClientEvent
from wa_gateway.models.message import MessageRecord, SendResult
from wa_gateway.models.session import (
    AuthArtifact,
    ClientInfo,
    Conversation,
    SessionEvent,
    SessionState,
    SessionStatus,
)
from wa_gateway.normalizer import normalize
from wa_gateway.qr import render_data_uri, render_terminal
from wa_gateway.state import keeps_auth_artifact, next_state
from wa_gateway.store import PersistenceStore
from wa_gateway.transport.base import ClientFactory, MessagingClient
from wa_gateway.validation import ensure_valid_message, format_address, validate_address

logger = logging.getLogger(__name__)

PROBABLE_DELIVERY_NOTE = "Message likely delivered (markedUnread bug workaround)"

StateListener = Callable[[SessionState, Optional[AuthArtifact]], Any]


def is_probable_delivery_error(error: BaseException) -> bool:
    """Whether a send error is the client's known post-send `markedUnread` failure.

    The message is usually delivered when this fires. This is a heuristic on
    the error text, not a protocol guarantee.
    """
    return "markedUnread" in str(error)


def sent_message_id(sent: Any) -> Optional[str]:
    value = sent.get("id") if isinstance(sent, dict) else None
    if isinstance(value, dict):
        value = value.get("id") or value.get("_serialized")
    return str(value) if value else None


def build_auth_artifact(payload: str) -> AuthArtifact:
    artifact = AuthArtifact(payload=payload, created_at=datetime.now(timezone.utc))
    try:
        artifact.data_uri = render_data_uri(payload)
        artifact.terminal = render_terminal(payload)
    except Exception:
        logger.exception("Failed to render QR code")
    return artifact


class SessionManager:
    def __init__(
        self,
        config: GatewayConfig,
        client_factory: ClientFactory,
        dispatcher: MessageDispatcher,
        store: Optional[PersistenceStore] = None,
    ):
        self._config = config
        self._client_factory = client_factory
        self._dispatcher = dispatcher
        self._store = store
        self._client: Optional[MessagingClient] = None
        self._state = SessionState.DISCONNECTED
        self._auth_artifact: Optional[AuthArtifact] = None
        self._state_listeners: list[StateListener] = []
        self._lifecycle_lock = asyncio.Lock()
        self._dispatch_lock = asyncio.Lock()
        self._ready = asyncio.Event()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is SessionState.READY and self._client is not None

    def on_state_change(self, listener: StateListener) -> None:
        """Call `listener(state, artifact)` after every applied transition."""
        self._state_listeners.append(listener)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """(Re)create the client and begin connecting.

        Any existing client is destroyed first; its destroy errors are ignored
        because it may never have finished initializing.
        """
        async with self._lifecycle_lock:
            if self._client is not None:
                old, self._client = self._client, None
                logger.info("Destroying existing client before reconnecting...")
                try:
                    await old.destroy()
                except Exception as e:
                    logger.warning("Could not destroy existing client (may not be running): %s", e)
                self._transition(SessionEvent.STOP)

            session_dir = self._config.session_dir
            reconcile_locks(session_dir)

            client = self._client_factory(session_dir)
            self._install_handlers(client)
            self._client = client
            self._transition(SessionEvent.CONNECT)

            logger.info("Starting WhatsApp client in %s", session_dir)
            try:
                await client.connect()
            except Exception as e:
                logger.error("Failed to start WhatsApp client: %s", e)
                if self._client is client:
                    self._client = None
                try:
                    await client.destroy()
                except Exception as destroy_error:
                    logger.debug("Cleanup after failed start: %s", destroy_error)
                self._transition(SessionEvent.STOP)
                raise SessionError(f"Client initialization failed: {e}") from e
            logger.info("WhatsApp client initialization completed")

    async def stop(self) -> None:
        async with self._lifecycle_lock:
            if self._client is None:
                return
            client, self._client = self._client, None
            try:
                await client.destroy()
            except Exception as e:
                logger.error("Failed to stop WhatsApp client: %s", e)
                raise SessionError(f"Failed to stop client: {e}") from e
            finally:
                self._transition(SessionEvent.STOP)
            logger.info("WhatsApp client stopped successfully")

    def status(self) -> SessionStatus:
        return SessionStatus(
            state=self._state,
            is_ready=self.is_ready,
            has_auth_artifact=self._auth_artifact is not None,
            handler_count=len(self._dispatcher.handlers),
            as_of=datetime.now(timezone.utc),
        )

    def get_auth_artifact(self) -> Optional[AuthArtifact]:
        return self._auth_artifact

    def register_handler(self, handler: Callable[[MessageRecord], Any]) -> None:
        self._dispatcher.add_handler(handler)

    async def wait_until_ready(self, timeout: Optional[float] = None) -> None:
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=timeout or self._config.ready_timeout)
        except asyncio.TimeoutError:
            raise SessionError(f"Client not ready after {timeout or self._config.ready_timeout}s", code="timeout")

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _transition(self, event: SessionEvent, artifact: Optional[AuthArtifact] = None) -> bool:
        target = next_state(self._state, event)
        if target is None:
            logger.info("Ignoring %s event in state %s", event.value, self._state.value)
            return False

        previous, self._state = self._state, target
        if keeps_auth_artifact(target):
            if artifact is not None:
                self._auth_artifact = artifact
        else:
            self._auth_artifact = None

        if target is SessionState.READY:
            self._ready.set()
        else:
            self._ready.clear()

        if previous is not target:
            logger.info("Session state %s -> %s (%s)", previous.value, target.value, event.value)
        for listener in list(self._state_listeners):
            try:
                listener(target, self._auth_artifact)
            except Exception:
                logger.exception("State listener failed")
        return True

    def _install_handlers(self, client: MessagingClient) -> None:
        def current(handler: Callable[..., Any]) -> Callable[..., Any]:
            # Late events from a replaced client must not touch the new session
            async def guarded(*args: Any) -> None:
                if client is not self._client:
                    logger.debug("Dropping event from a retired client")
                    return
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            return guarded

        client.on(ClientEvent.QR, current(self._on_qr))
        client.on(ClientEvent.AUTHENTICATED, current(self._on_authenticated))
        client.on(ClientEvent.READY, current(self._on_ready))
        client.on(ClientEvent.AUTH_FAILURE, current(self._on_auth_failure))
        client.on(ClientEvent.DISCONNECTED, current(self._on_disconnected))
        client.on(ClientEvent.MESSAGE, current(self._on_message))
        client.on(ClientEvent.MESSAGE_CREATE, current(self._on_message_create))
        client.on(ClientEvent.ERROR, current(self._on_error))
        client.on(ClientEvent.LOADING_SCREEN, current(self._on_loading_screen))

    def _on_qr(self, payload: Any) -> None:
        if self._state not in (SessionState.CONNECTING, SessionState.AWAITING_SCAN):
            logger.info("Ignoring qr event in state %s", self._state.value)
            return
        self._transition(SessionEvent.QR, build_auth_artifact(str(payload)))
        logger.info("QR code generated, waiting for scan")

    def _on_authenticated(self, *_args: Any) -> None:
        self._transition(SessionEvent.AUTHENTICATED)

    def _on_ready(self, *_args: Any) -> None:
        if self._transition(SessionEvent.READY):
            logger.info("WhatsApp client is ready and authenticated")

    def _on_auth_failure(self, reason: Any = None) -> None:
        logger.error("Authentication failed: %s", reason)
        self._transition(SessionEvent.AUTH_FAILURE)

    def _on_disconnected(self, reason: Any = None) -> None:
        logger.warning("WhatsApp client disconnected: %s", reason)
        self._transition(SessionEvent.DISCONNECTED)

    def _on_error(self, error: Any = None) -> None:
        logger.error("WhatsApp client error: %s", error)

    def _on_loading_screen(self, percent: Any = None, message: Any = None) -> None:
        logger.debug("Loading screen %s%% %s", percent, message or "")

    async def _on_message(self, raw: Any) -> None:
        if not isinstance(raw, dict):
            logger.warning("Dropping non-object message event: %r", raw)
            return
        async with self._dispatch_lock:
            try:
                record = normalize(raw)
            except (ValidationError, ValueError) as e:
                logger.error("Could not normalize message event: %s", e)
                return
            await self._dispatcher.dispatch(record)

    async def _on_message_create(self, raw: Any) -> None:
        # message_create also fires for received messages, which `message` covers
        if isinstance(raw, dict) and raw.get("fromMe"):
            await self._on_message(raw)

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def _require_ready(self) -> MessagingClient:
        if not self.is_ready:
            raise NotReadyError()
        return self._client  # type: ignore[return-value]

    async def send_direct(self, address: str, text: str, country_code: Optional[str] = None) -> SendResult:
        """Send `text` to a phone number. Invalid input raises ValidationError."""
        cc = country_code or self._config.country_code
        ensure_valid_message(text, self._config.max_message_length)
        if not validate_address(address):
            raise ValidationError("Invalid phone number format", details={"address": address})
        formatted = format_address(address, cc)
        fields = {"to": formatted, "original_address": address, "body": text, "country_code": cc}

        try:
            client = self._require_ready()
            resolved = await client.resolve_address(formatted)
            if not resolved:
                raise ClientError(f"Phone number {address} is not registered on WhatsApp", code="not_registered")
            return await self._deliver(client, resolved, text, fields)
        except Exception as e:
            logger.error("Failed to send message to %s: %s", formatted, e)
            return SendResult(success=False, error=str(e), to=address, body=text)

    async def send_to_conversation(self, conversation_id: str, text: str) -> SendResult:
        ensure_valid_message(text, self._config.max_message_length)
        if not conversation_id or not conversation_id.strip():
            raise ValidationError("Chat ID is required")

        try:
            client = self._require_ready()
            return await self._deliver(client, conversation_id, text, {"to": conversation_id, "body": text})
        except Exception as e:
            logger.error("Failed to send message to chat %s: %s", conversation_id, e)
            return SendResult(success=False, error=str(e), to=conversation_id, body=text)

    async def _deliver(self, client: MessagingClient, address: str, text: str, fields: dict[str, Any]) -> SendResult:
        try:
            sent = await client.send_message(address, text)
        except Exception as e:
            if not is_probable_delivery_error(e):
                raise
            logger.warning("markedUnread bug encountered - message likely sent to %s", address)
            return SendResult(
                success=True,
                id=f"pending-{int(time.time() * 1000)}",
                sent_at=int(time.time()),
                note=PROBABLE_DELIVERY_NOTE,
                **fields,
            )

        result = SendResult(
            success=True,
            id=sent_message_id(sent),
            sent_at=sent.get("timestamp") if isinstance(sent, dict) else None,
            **fields,
        )
        logger.info("Message sent to %s (id=%s): %s", address, result.id, preview(text))
        return result

    async def send_media(
        self,
        conversation_id: str,
        data_base64: str,
        mimetype: str,
        filename: str,
        caption: str = "",
    ) -> SendResult:
        if not conversation_id or not data_base64 or not mimetype:
            raise ValidationError("Chat ID, media data and mimetype are required")

        try:
            client = self._require_ready()
            sent = await client.send_media(conversation_id, data_base64, mimetype, filename, caption)
        except Exception as e:
            logger.error("Failed to send media to %s: %s", conversation_id, e)
            return SendResult(success=False, error=str(e), to=conversation_id)

        logger.info("Media %s sent to chat %s", filename, conversation_id)
        return SendResult(
            success=True,
            id=sent_message_id(sent),
            sent_at=sent.get("timestamp") if isinstance(sent, dict) else None,
            to=conversation_id,
            body=caption or None,
        )

    async def reply_to_message(self, message_id: str, text: str) -> SendResult:
        """Quote-reply to a received message and mark it processed."""
        ensure_valid_message(text, self._config.max_message_length)
        if not message_id:
            raise ValidationError("Message ID is required")

        try:
            client = self._require_ready()
            sent = await client.reply(message_id, text)
        except Exception as e:
            logger.error("Failed to reply to message %s: %s", message_id, e)
            return SendResult(success=False, error=str(e), body=text)

        # The store resolves a bare id to full ids; the buffer flags the same ones
        flagged: list[str] = []
        if self._store is not None:
            try:
                flagged = self._store.mark_processed(message_id)
            except Exception:
                logger.exception("Failed to mark message %s processed", message_id)
        for full_id in flagged or [message_id]:
            self._dispatcher.log.mark_processed(full_id)

        logger.info("Reply sent to message %s: %s", message_id, preview(text))
        return SendResult(
            success=True,
            id=sent_message_id(sent),
            sent_at=sent.get("timestamp") if isinstance(sent, dict) else None,
            body=text,
        )

    # ------------------------------------------------------------------
    # Conversations and account
    # ------------------------------------------------------------------

    async def get_conversations(self) -> list[Conversation]:
        client = self._require_ready()
        return [Conversation.from_raw(chat) for chat in await client.get_conversations()]

    async def get_conversation(self, conversation_id: str) -> Conversation:
        client = self._require_ready()
        chat = await client.get_conversation(conversation_id)
        if not chat:
            raise ClientError(f"Chat with ID {conversation_id} not found", code="not_found")
        return Conversation.from_raw(chat)

    async def fetch_messages(self, conversation_id: str, limit: int = 50) -> list[MessageRecord]:
        client = self._require_ready()
        if not await client.get_conversation(conversation_id):
            raise ClientError(f"Chat with ID {conversation_id} not found", code="not_found")
        return [normalize(raw) for raw in await client.fetch_recent(conversation_id, limit)]

    async def is_registered(self, address: str, country_code: Optional[str] = None) -> bool:
        try:
            client = self._require_ready()
            formatted = format_address(address, country_code or self._config.country_code)
            return bool(await client.resolve_address(formatted))
        except Exception as e:
            logger.error("Error checking number registration: %s", e)
            return False

    async def get_client_info(self) -> Optional[ClientInfo]:
        if not self.is_ready:
            return None
        try:
            info = await self._client.get_info() or {}  # type: ignore[union-attr]
        except Exception as e:
            logger.error("Failed to get client info: %s", e)
            return None
        wid = info.get("wid")
        return ClientInfo(
            phone_number=wid.get("user") if isinstance(wid, dict) else wid,
            platform=info.get("platform"),
            pushname=info.get("pushname"),
            connected=True,
            last_seen=datetime.now(timezone.utc),
        )
