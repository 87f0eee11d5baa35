"""
Session state machine.

`next_state` is total over (state, event): pairs missing from the table map
to None, which callers log and ignore. The bridge does not always emit
events in the same order across client versions.
"""

from typing import Optional

from wa_gateway.models.session import SessionEvent, SessionState

_ANY = frozenset(SessionState)
_PAIRING = frozenset({SessionState.CONNECTING, SessionState.AWAITING_SCAN})

# event -> (allowed source states, target state)
TRANSITIONS: dict[SessionEvent, tuple[frozenset[SessionState], SessionState]] = {
    SessionEvent.CONNECT: (frozenset({SessionState.DISCONNECTED}), SessionState.CONNECTING),
    SessionEvent.QR: (_PAIRING, SessionState.AWAITING_SCAN),
    SessionEvent.AUTHENTICATED: (_PAIRING, SessionState.AUTHENTICATED),
    SessionEvent.READY: (_PAIRING | {SessionState.AUTHENTICATED}, SessionState.READY),
    SessionEvent.AUTH_FAILURE: (_ANY, SessionState.DISCONNECTED),
    SessionEvent.DISCONNECTED: (_ANY, SessionState.DISCONNECTED),
    SessionEvent.STOP: (_ANY, SessionState.DISCONNECTED),
}


def next_state(current: SessionState, event: SessionEvent) -> Optional[SessionState]:
    sources, target = TRANSITIONS[event]
    if current not in sources:
        return None
    return target


def keeps_auth_artifact(state: SessionState) -> bool:
    """The pairing artifact only lives while waiting for a scan."""
    return state is SessionState.AWAITING_SCAN
