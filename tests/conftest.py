"""Shared fixtures: a scriptable messaging client and a wired gateway."""

import inspect
from collections import defaultdict
from pathlib import Path
from typing import Any, Optional

import pytest
import pytest_asyncio

from wa_gateway.config import GatewayConfig
from wa_gateway.gateway import Gateway
from wa_gateway.models.events import ClientEvent
from wa_gateway.store import MessageStore

SENDER = "972501234567@c.us"
ACCOUNT = "972529999999@c.us"


class FakeClient:
    """Stands in for the bridge client; tests fire events with `emit`."""

    def __init__(self, session_dir: Path):
        self.session_dir = session_dir
        self.listeners: dict[str, list[Any]] = defaultdict(list)
        self.connected = False
        self.destroyed = False
        self.connect_error: Optional[Exception] = None
        self.destroy_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None
        self.registered = True
        self.sent: list[tuple[str, str]] = []
        self.replies: list[tuple[str, str]] = []
        self.resolved: list[str] = []
        self.conversations: dict[str, dict[str, Any]] = {}
        self.history: dict[str, list[dict[str, Any]]] = {}
        self.info: Optional[dict[str, Any]] = None

    def on(self, event: str, handler: Any) -> None:
        self.listeners[event].append(handler)

    async def emit(self, event: str, *args: Any) -> None:
        for handler in list(self.listeners[event]):
            result = handler(*args)
            if inspect.isawaitable(result):
                await result

    async def connect(self) -> None:
        if self.connect_error:
            raise self.connect_error
        self.connected = True

    async def destroy(self) -> None:
        self.destroyed = True
        self.connected = False
        if self.destroy_error:
            raise self.destroy_error

    async def send_message(self, address: str, content: str) -> dict[str, Any]:
        self.sent.append((address, content))
        if self.send_error:
            raise self.send_error
        n = len(self.sent)
        return {"id": {"id": f"MSG{n}", "_serialized": f"true_{address}_MSG{n}"}, "timestamp": 1700000000 + n}

    async def send_media(self, address: str, data: str, mimetype: str, filename: str, caption: str = "") -> dict[str, Any]:
        self.sent.append((address, caption))
        return {"id": {"id": "MEDIA1"}, "timestamp": 1700000000}

    async def resolve_address(self, number: str) -> Optional[str]:
        self.resolved.append(number)
        return number if self.registered else None

    async def get_conversations(self) -> list[dict[str, Any]]:
        return list(self.conversations.values())

    async def get_conversation(self, conversation_id: str) -> Optional[dict[str, Any]]:
        return self.conversations.get(conversation_id)

    async def fetch_recent(self, conversation_id: str, limit: int) -> list[dict[str, Any]]:
        return self.history.get(conversation_id, [])[:limit]

    async def reply(self, message_id: str, content: str) -> dict[str, Any]:
        self.replies.append((message_id, content))
        return {"id": {"id": "REPLY1"}, "timestamp": 1700000000}

    async def get_info(self) -> Optional[dict[str, Any]]:
        return self.info


def make_raw(
    body: str = "hello",
    msg_id: str = "ABC123",
    sender: str = SENDER,
    from_me: bool = False,
    type: str = "chat",
    timestamp: Any = 1700000000,
    remote: Optional[str] = None,
    **extra: Any,
) -> dict[str, Any]:
    """Message event shaped like the bridge's serialized WhatsApp message."""
    chat = remote or sender
    raw = {
        "id": {
            "fromMe": from_me,
            "remote": chat,
            "id": msg_id,
            "_serialized": f"{'true' if from_me else 'false'}_{chat}_{msg_id}",
        },
        "from": ACCOUNT if from_me else sender,
        "to": sender if from_me else ACCOUNT,
        "body": body,
        "timestamp": timestamp,
        "type": type,
        "fromMe": from_me,
        "notifyName": "Dana",
    }
    raw.update(extra)
    return raw


@pytest.fixture
def config(tmp_path) -> GatewayConfig:
    return GatewayConfig(
        session_path=tmp_path / "sessions",
        data_path=tmp_path / "data",
        ready_timeout=1.0,
    )


@pytest.fixture
def clients() -> list[FakeClient]:
    return []


@pytest.fixture
def client_factory(clients):
    def factory(session_dir: Path) -> FakeClient:
        client = FakeClient(session_dir)
        clients.append(client)
        return client
    return factory


@pytest.fixture
def store(config):
    s = MessageStore(config.database_path)
    yield s
    s.close()


@pytest_asyncio.fixture
async def gateway(config, client_factory, store) -> Gateway:
    return Gateway(config, client_factory=client_factory, store=store)


@pytest_asyncio.fixture
async def ready_gateway(gateway, clients) -> Gateway:
    await gateway.start()
    await clients[-1].emit(ClientEvent.AUTHENTICATED)
    await clients[-1].emit(ClientEvent.READY)
    return gateway
