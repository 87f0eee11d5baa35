"""
Bridge command/result envelopes.
"""

from typing import Any, Optional
from pydantic import BaseModel


class CommandMetadata(BaseModel):
    request_id: str
    timestamp: str
    client_id: str


class CommandEnvelope(BaseModel):
    metadata: CommandMetadata
    type: str
    data: Optional[Any] = None


class ResultEnvelope(BaseModel):
    request_id: str
    ok: bool = True
    data: Optional[Any] = None
    error: Optional[str] = None
