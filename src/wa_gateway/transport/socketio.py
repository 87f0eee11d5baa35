"""
Socket.IO messaging client — talks to the WhatsApp bridge sidecar.

The bridge runs the real WhatsApp Web client against `session_dir` and
relays its events (`qr`, `ready`, `message`, ...) over Socket.IO. Commands
are emitted as envelopes carrying a request_id; the bridge answers each with
a `command:result` envelope echoing that id.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Optional

import socketio
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from wa_gateway.errors import ClientError, ConnectionError
from wa_gateway.models.events import BridgeCommand, ClientEvent
from wa_gateway.transport.base import EventHandler
from wa_gateway.transport.envelope import build_command, parse_result

logger = logging.getLogger(__name__)

SOCKETIO_PATH = "/socket.io/"
BRIDGE_LOST_REASON = "bridge_disconnected"


class SocketIOMessagingClient:
    def __init__(
        self,
        bridge_url: str,
        session_dir: Path,
        client_id: str,
        transports: Optional[list[str]] = None,
        command_timeout: float = 30.0,
    ):
        self._bridge_url = bridge_url
        self._session_dir = session_dir
        self._client_id = client_id
        self._transports = transports or ["websocket"]
        self._command_timeout = command_timeout
        self._sio: Optional[socketio.AsyncClient] = None
        self._listeners: dict[str, list[EventHandler]] = defaultdict(list)
        self._pending: dict[str, asyncio.Future] = {}
        self._closing = False

    @property
    def connected(self) -> bool:
        return self._sio is not None and self._sio.connected

    def on(self, event: str, handler: EventHandler) -> None:
        """Add a listener for a bridge event. Listeners run in registration order."""
        self._listeners[event].append(handler)

    async def _emit_local(self, event: str, *args: Any) -> None:
        for handler in list(self._listeners.get(event, ())):
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Listener for %r failed", event)

    def _make_relay(self, event: str):
        async def relay(*args: Any) -> None:
            await self._emit_local(event, *args)
        return relay

    async def connect(self) -> None:
        """Open the bridge socket and ask it to initialize the WhatsApp client."""
        if self._sio and self._sio.connected:
            return

        self._closing = False
        self._sio = socketio.AsyncClient()
        for event in ClientEvent.ALL:
            self._sio.on(event, self._make_relay(event))

        @self._sio.on(ClientEvent.COMMAND_RESULT)
        async def on_result(raw: Any) -> None:
            result = parse_result(raw)
            if result is None:
                logger.warning("Dropping malformed command result: %r", raw)
                return
            future = self._pending.get(result.request_id)
            if future is not None and not future.done():
                future.set_result(result)

        @self._sio.event
        async def disconnect(*_args: Any) -> None:
            self._fail_pending(ConnectionError("Bridge connection lost"))
            if not self._closing:
                await self._emit_local(ClientEvent.DISCONNECTED, BRIDGE_LOST_REASON)

        try:
            await self._sio.connect(
                self._bridge_url,
                auth={"client_id": self._client_id, "session_dir": str(self._session_dir)},
                transports=self._transports,
                socketio_path=SOCKETIO_PATH,
            )
        except SocketIOConnectionError as e:
            self._sio = None
            raise ConnectionError(f"Could not reach bridge at {self._bridge_url}: {e}") from e

        await self._call(BridgeCommand.CONNECT, {"session_dir": str(self._session_dir)})

    async def destroy(self) -> None:
        """Tear down the WhatsApp client on the bridge and close the socket."""
        if not self._sio:
            return
        self._closing = True
        try:
            if self._sio.connected:
                await self._call(BridgeCommand.DESTROY, None)
        finally:
            await self._sio.disconnect()
            self._sio = None
            self._fail_pending(ConnectionError("Client destroyed"))

    async def send_message(self, address: str, content: str) -> dict[str, Any]:
        return await self._call(BridgeCommand.SEND_MESSAGE, {"chat_id": address, "content": content}) or {}

    async def send_media(
        self, address: str, data: str, mimetype: str, filename: str, caption: str = "",
    ) -> dict[str, Any]:
        return await self._call(BridgeCommand.SEND_MEDIA, {
            "chat_id": address,
            "media": {"data": data, "mimetype": mimetype, "filename": filename},
            "caption": caption,
        }) or {}

    async def resolve_address(self, number: str) -> Optional[str]:
        data = await self._call(BridgeCommand.RESOLVE_ADDRESS, {"number": number})
        if isinstance(data, dict):
            return data.get("_serialized")
        return data or None

    async def get_conversations(self) -> list[dict[str, Any]]:
        return await self._call(BridgeCommand.GET_CONVERSATIONS, None) or []

    async def get_conversation(self, conversation_id: str) -> Optional[dict[str, Any]]:
        return await self._call(BridgeCommand.GET_CONVERSATION, {"chat_id": conversation_id})

    async def fetch_recent(self, conversation_id: str, limit: int) -> list[dict[str, Any]]:
        return await self._call(BridgeCommand.FETCH_RECENT, {"chat_id": conversation_id, "limit": limit}) or []

    async def reply(self, message_id: str, content: str) -> dict[str, Any]:
        return await self._call(BridgeCommand.REPLY, {"message_id": message_id, "content": content}) or {}

    async def get_info(self) -> Optional[dict[str, Any]]:
        return await self._call(BridgeCommand.GET_INFO, None)

    async def _call(self, command: str, data: Any) -> Any:
        """Emit a command and wait for its result envelope."""
        if not self._sio or not self._sio.connected:
            raise ConnectionError("Bridge not connected")
        envelope = build_command(command, data, client_id=self._client_id)
        request_id = envelope["metadata"]["request_id"]
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            await self._sio.emit(command, envelope)
            result = await asyncio.wait_for(future, timeout=self._command_timeout)
        except asyncio.TimeoutError:
            raise ClientError(f"Timeout waiting for {command} result", code="timeout")
        finally:
            self._pending.pop(request_id, None)

        if not result.ok:
            raise ClientError(result.error or f"{command} failed", details={"command": command})
        return result.data

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()


def socketio_client_factory(bridge_url: str, client_id: str, command_timeout: float = 30.0):
    """Return a factory that binds a new bridge client to a session directory."""
    def factory(session_dir: Path) -> SocketIOMessagingClient:
        return SocketIOMessagingClient(
            bridge_url=bridge_url,
            session_dir=session_dir,
            client_id=client_id,
            command_timeout=command_timeout,
        )
    return factory
