"""
Event and command names exchanged with the WhatsApp bridge.
"""


class ClientEvent:
    """Bridge -> gateway events."""

    QR = "qr"
    READY = "ready"
    AUTHENTICATED = "authenticated"
    AUTH_FAILURE = "auth_failure"
    DISCONNECTED = "disconnected"
    MESSAGE = "message"
    MESSAGE_CREATE = "message_create"
    ERROR = "error"
    LOADING_SCREEN = "loading_screen"
    COMMAND_RESULT = "command:result"

    ALL = (
        QR, READY, AUTHENTICATED, AUTH_FAILURE, DISCONNECTED,
        MESSAGE, MESSAGE_CREATE, ERROR, LOADING_SCREEN,
    )


class BridgeCommand:
    """Gateway -> bridge commands, answered by a `command:result` envelope."""

    CONNECT = "command:connect"
    DESTROY = "command:destroy"
    SEND_MESSAGE = "command:send_message"
    SEND_MEDIA = "command:send_media"
    RESOLVE_ADDRESS = "command:resolve_address"
    GET_CONVERSATIONS = "command:get_conversations"
    GET_CONVERSATION = "command:get_conversation"
    FETCH_RECENT = "command:fetch_recent"
    REPLY = "command:reply"
    GET_INFO = "command:get_info"
