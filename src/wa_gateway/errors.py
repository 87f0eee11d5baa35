"""
wa-gateway error types.

Validation errors are raised before any I/O. Session errors cover client
start/stop failures. Client errors carry failures reported by the bridge.
"""

from typing import Any, Optional


class GatewayError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ValidationError(GatewayError):
    def __init__(self, message: str, code: str = "validation_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class SessionError(GatewayError):
    def __init__(self, message: str, code: str = "session_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class NotReadyError(SessionError):
    def __init__(self, message: str = "WhatsApp client is not ready. Please authenticate first."):
        super().__init__(message, code="not_ready")


class ClientError(GatewayError):
    def __init__(self, message: str, code: str = "client_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class ConnectionError(GatewayError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)
