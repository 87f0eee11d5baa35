"""
Command envelope construction and result parsing for the bridge.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from wa_gateway.models.envelope import CommandEnvelope, CommandMetadata, ResultEnvelope


def build_command(
    command: str,
    data: Any,
    client_id: str,
    request_id: Optional[str] = None,
) -> dict[str, Any]:
    """Build a command envelope as a dict ready for Socket.IO emit."""
    envelope = CommandEnvelope(
        metadata=CommandMetadata(
            request_id=request_id or str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc).isoformat(),
            client_id=client_id,
        ),
        type=command,
        data=data,
    )
    return envelope.model_dump()


def parse_result(raw: Any) -> Optional[ResultEnvelope]:
    """Parse a `command:result` envelope. Returns None if invalid."""
    if not isinstance(raw, dict):
        return None
    try:
        return ResultEnvelope.model_validate(raw)
    except ValueError:
        return None
