"""Basic unit tests for the wa-gateway package."""

from wa_gateway import (
    AutoResponder,
    ClientError,
    ConnectionError,
    Gateway,
    GatewayError,
    NotReadyError,
    SessionError,
    SessionManager,
    SessionState,
    ValidationError,
    __version__,
)
from wa_gateway.models.events import BridgeCommand, ClientEvent


def test_version():
    assert __version__ == "0.1.0"


def test_public_exports():
    assert Gateway is not None
    assert SessionManager is not None
    assert AutoResponder is not None


def test_error_hierarchy():
    assert issubclass(ValidationError, GatewayError)
    assert issubclass(SessionError, GatewayError)
    assert issubclass(NotReadyError, SessionError)
    assert issubclass(ClientError, GatewayError)
    assert issubclass(ConnectionError, GatewayError)


def test_error_attributes():
    err = GatewayError(code="test_code", message="something broke")
    assert err.code == "test_code"
    assert str(err) == "something broke"
    assert err.details is None

    err_with_details = ValidationError("bad number", details={"address": "123"})
    assert err_with_details.code == "validation_error"
    assert err_with_details.details == {"address": "123"}

    assert NotReadyError().code == "not_ready"


def test_event_constants():
    assert ClientEvent.QR == "qr"
    assert ClientEvent.AUTH_FAILURE == "auth_failure"
    assert ClientEvent.COMMAND_RESULT not in ClientEvent.ALL
    assert BridgeCommand.SEND_MESSAGE == "command:send_message"
    assert SessionState.READY.value == "ready"
