"""Tests for the Socket.IO bridge client's command and event plumbing."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from wa_gateway.errors import ClientError, ConnectionError
from wa_gateway.models.envelope import ResultEnvelope
from wa_gateway.models.events import BridgeCommand, ClientEvent
from wa_gateway.transport.envelope import build_command, parse_result
from wa_gateway.transport.socketio import SocketIOMessagingClient, socketio_client_factory


def make_client(tmp_path, reply=None, command_timeout=1.0):
    """Client with a fake socket; `reply(command, envelope)` builds the result."""
    client = SocketIOMessagingClient(
        "http://bridge", tmp_path, "test-client", command_timeout=command_timeout,
    )
    emitted = []

    async def emit(command, envelope):
        emitted.append((command, envelope))
        if reply is None:
            return
        request_id = envelope["metadata"]["request_id"]
        client._pending[request_id].set_result(reply(command, envelope))

    client._sio = MagicMock(connected=True)
    client._sio.emit = AsyncMock(side_effect=emit)
    client._sio.disconnect = AsyncMock()
    return client, emitted


class TestEnvelope:
    def test_build_command(self):
        env = build_command(BridgeCommand.SEND_MESSAGE, {"chat_id": "x"}, client_id="c1", request_id="r1")
        assert env["type"] == "command:send_message"
        assert env["data"] == {"chat_id": "x"}
        assert env["metadata"]["request_id"] == "r1"
        assert env["metadata"]["client_id"] == "c1"

    def test_parse_result(self):
        result = parse_result({"request_id": "r1", "ok": False, "error": "boom"})
        assert result.request_id == "r1"
        assert not result.ok
        assert parse_result("nope") is None
        assert parse_result({"ok": True}) is None


class TestCommands:
    @pytest.mark.asyncio
    async def test_send_message(self, tmp_path):
        def reply(command, envelope):
            return ResultEnvelope(
                request_id=envelope["metadata"]["request_id"],
                data={"id": {"id": "M1"}, "timestamp": 1700000000},
            )

        client, emitted = make_client(tmp_path, reply)
        sent = await client.send_message("972501234567@c.us", "hi")

        assert sent["id"]["id"] == "M1"
        command, envelope = emitted[0]
        assert command == BridgeCommand.SEND_MESSAGE
        assert envelope["data"] == {"chat_id": "972501234567@c.us", "content": "hi"}
        assert client._pending == {}

    @pytest.mark.asyncio
    async def test_resolve_address(self, tmp_path):
        def reply(command, envelope):
            return ResultEnvelope(
                request_id=envelope["metadata"]["request_id"],
                data={"_serialized": "972501234567@c.us"},
            )

        client, _ = make_client(tmp_path, reply)
        assert await client.resolve_address("972501234567@c.us") == "972501234567@c.us"

    @pytest.mark.asyncio
    async def test_error_result_raises(self, tmp_path):
        def reply(command, envelope):
            return ResultEnvelope(request_id=envelope["metadata"]["request_id"], ok=False, error="markedUnread")

        client, _ = make_client(tmp_path, reply)
        with pytest.raises(ClientError, match="markedUnread"):
            await client.send_message("972501234567@c.us", "hi")

    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path):
        client, _ = make_client(tmp_path, reply=None, command_timeout=0.01)
        with pytest.raises(ClientError) as exc_info:
            await client.get_conversations()
        assert exc_info.value.code == "timeout"
        assert client._pending == {}

    @pytest.mark.asyncio
    async def test_not_connected(self, tmp_path):
        client = SocketIOMessagingClient("http://bridge", tmp_path, "test-client")
        assert not client.connected
        with pytest.raises(ConnectionError):
            await client.get_info()

    @pytest.mark.asyncio
    async def test_fail_pending(self, tmp_path):
        client, _ = make_client(tmp_path)
        future = asyncio.get_running_loop().create_future()
        client._pending["r1"] = future

        client._fail_pending(ConnectionError("Bridge connection lost"))

        with pytest.raises(ConnectionError):
            await future
        assert client._pending == {}

    @pytest.mark.asyncio
    async def test_destroy_closes_socket(self, tmp_path):
        def reply(command, envelope):
            return ResultEnvelope(request_id=envelope["metadata"]["request_id"])

        client, emitted = make_client(tmp_path, reply)
        sio = client._sio
        await client.destroy()

        assert emitted[0][0] == BridgeCommand.DESTROY
        sio.disconnect.assert_awaited_once()
        assert client._sio is None
        await client.destroy()


class TestListeners:
    @pytest.mark.asyncio
    async def test_listeners_run_in_order_and_are_isolated(self, tmp_path):
        client = SocketIOMessagingClient("http://bridge", tmp_path, "test-client")
        calls = []

        def broken(payload):
            raise RuntimeError("listener bug")

        async def second(payload):
            calls.append(("second", payload))

        client.on(ClientEvent.QR, lambda payload: calls.append(("first", payload)))
        client.on(ClientEvent.QR, broken)
        client.on(ClientEvent.QR, second)

        await client._emit_local(ClientEvent.QR, "code")

        assert calls == [("first", "code"), ("second", "code")]

    def test_factory_binds_session_dir(self, tmp_path):
        factory = socketio_client_factory("http://bridge", "c1", command_timeout=5)
        client = factory(tmp_path / "session-c1")
        assert isinstance(client, SocketIOMessagingClient)
        assert client._session_dir == tmp_path / "session-c1"
