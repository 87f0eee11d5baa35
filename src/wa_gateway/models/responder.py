"""
Auto-responder rule models.

Triggers and responses are small tagged unions; each variant carries its own
evaluation method so the engine never inspects raw types at match time.
"""

import inspect
import re
from datetime import datetime
from typing import Annotated, Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from wa_gateway.errors import ValidationError


class SubstringTrigger(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["substring"] = "substring"
    text: str

    def matches(self, text: str) -> bool:
        return self.text.lower() in text

    def describe(self) -> str:
        return self.text


class PatternTrigger(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["pattern"] = "pattern"
    pattern: re.Pattern

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None

    def describe(self) -> str:
        flags = "i" if self.pattern.flags & re.IGNORECASE else ""
        return f"/{self.pattern.pattern}/{flags}"


class PredicateTrigger(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["predicate"] = "predicate"
    predicate: Callable[[str], Any]

    def matches(self, text: str) -> bool:
        return bool(self.predicate(text))

    def describe(self) -> str:
        name = getattr(self.predicate, "__name__", None) or repr(self.predicate)
        return f"<predicate {name}>"


Trigger = Annotated[
    Union[SubstringTrigger, PatternTrigger, PredicateTrigger],
    Field(discriminator="kind"),
]


class StaticResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["static"] = "static"
    text: str

    async def resolve(self, message: Any) -> str:
        return self.text


class DeferredResponse(BaseModel):
    """Producer called with the message record; may be sync or async."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["deferred"] = "deferred"
    producer: Callable[[Any], Any]

    async def resolve(self, message: Any) -> str:
        result = self.producer(message)
        if inspect.isawaitable(result):
            result = await result
        return result or ""


Response = Annotated[
    Union[StaticResponse, DeferredResponse],
    Field(discriminator="kind"),
]


class AutoResponderRule(BaseModel):
    id: str
    trigger: Trigger
    response: Response
    enabled: bool = True
    created_at: datetime
    description: str = ""


class ResponderInfo(BaseModel):
    """Display form of a rule; the trigger is rendered as text."""

    id: str
    trigger: str
    trigger_kind: str
    response: str
    enabled: bool
    created_at: datetime
    description: str = ""


def as_trigger(value: Any) -> Union[SubstringTrigger, PatternTrigger, PredicateTrigger]:
    """Wrap a literal, compiled pattern or callable in its trigger variant."""
    if isinstance(value, (SubstringTrigger, PatternTrigger, PredicateTrigger)):
        return value
    if isinstance(value, str):
        if not value.strip():
            raise ValidationError("Trigger text cannot be empty")
        return SubstringTrigger(text=value)
    if isinstance(value, re.Pattern):
        return PatternTrigger(pattern=value)
    if callable(value):
        return PredicateTrigger(predicate=value)
    raise ValidationError(
        "Trigger must be a string, a compiled pattern or a callable",
        details={"type": type(value).__name__},
    )


def as_response(value: Any) -> Union[StaticResponse, DeferredResponse]:
    if isinstance(value, (StaticResponse, DeferredResponse)):
        return value
    if isinstance(value, str):
        return StaticResponse(text=value)
    if callable(value):
        return DeferredResponse(producer=value)
    raise ValidationError(
        "Response must be a string or a callable",
        details={"type": type(value).__name__},
    )


def describe_response(response: Union[StaticResponse, DeferredResponse]) -> str:
    if isinstance(response, StaticResponse):
        return response.text
    name = getattr(response.producer, "__name__", None) or repr(response.producer)
    return f"<producer {name}>"
