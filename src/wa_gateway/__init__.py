"""
wa-gateway — a WhatsApp account as a programmable endpoint.

Session lifecycle, message dispatch and auto-responses over a
Socket.IO bridge to the WhatsApp Web client.
"""

from wa_gateway.gateway import Gateway
from wa_gateway.config import GatewayConfig
from wa_gateway.session import SessionManager
from wa_gateway.responders import AutoResponder
from wa_gateway.errors import GatewayError, ValidationError, SessionError, NotReadyError, ClientError, ConnectionError
from wa_gateway.models.session import SessionState
from wa_gateway.models.message import MessageRecord, SendResult

__version__ = "0.1.0"
__all__ = [
    "Gateway",
    "GatewayConfig",
    "SessionManager",
    "AutoResponder",
    "GatewayError",
    "ValidationError",
    "SessionError",
    "NotReadyError",
    "ClientError",
    "ConnectionError",
    "SessionState",
    "MessageRecord",
    "SendResult",
]
