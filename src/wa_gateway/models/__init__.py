from wa_gateway.models.message import MessageKind, MessageRecord, SearchCriteria, SendResult
from wa_gateway.models.session import AuthArtifact, SessionEvent, SessionState, SessionStatus

__all__ = [
    "AuthArtifact",
    "MessageKind",
    "MessageRecord",
    "SearchCriteria",
    "SendResult",
    "SessionEvent",
    "SessionState",
    "SessionStatus",
]
