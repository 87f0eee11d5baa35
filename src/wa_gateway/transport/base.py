"""
Messaging client contract.

The gateway owns exactly one client at a time and talks to it only
through this protocol, so the bridge transport can be swapped in tests.
"""

from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

EventHandler = Callable[..., Union[None, Awaitable[None]]]


class MessagingClient(Protocol):
    def on(self, event: str, handler: EventHandler) -> None: ...
    async def connect(self) -> None: ...
    async def destroy(self) -> None: ...
    async def send_message(self, address: str, content: str) -> dict[str, Any]: ...
    async def send_media(
        self, address: str, data: str, mimetype: str, filename: str, caption: str = "",
    ) -> dict[str, Any]: ...
    async def resolve_address(self, number: str) -> Optional[str]: ...
    async def get_conversations(self) -> list[dict[str, Any]]: ...
    async def get_conversation(self, conversation_id: str) -> Optional[dict[str, Any]]: ...
    async def fetch_recent(self, conversation_id: str, limit: int) -> list[dict[str, Any]]: ...
    async def reply(self, message_id: str, content: str) -> dict[str, Any]: ...
    async def get_info(self) -> Optional[dict[str, Any]]: ...


ClientFactory = Callable[[Path], MessagingClient]
