"""
Auto-response engine.

Rules are evaluated in insertion order and the first enabled match wins;
one message never fires more than one reply.
"""

import json
import logging
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol, Union

from wa_gateway.errors import ValidationError
from wa_gateway.models.message import MessageKind, MessageRecord, SendResult
from wa_gateway.models.responder import (
    AutoResponderRule,
    ResponderInfo,
    as_response,
    as_trigger,
    describe_response,
)
from wa_gateway.validation import strip_conversation_suffix

logger = logging.getLogger(__name__)


class Sender(Protocol):
    async def send_direct(self, address: str, text: str, country_code: Optional[str] = None) -> SendResult: ...


class AutoResponder:
    def __init__(self, sender: Sender, process_group_messages: bool = False):
        self._sender = sender
        self.process_group_messages = process_group_messages
        self._rules: dict[str, AutoResponderRule] = {}

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def enabled_count(self) -> int:
        return sum(1 for rule in self._rules.values() if rule.enabled)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def add_responder(
        self,
        trigger: Any,
        response: Any,
        *,
        id: Optional[str] = None,
        enabled: bool = True,
        description: str = "",
    ) -> str:
        """Register a rule and return its id.

        `trigger` is a substring, a compiled pattern or a predicate taking the
        normalized text. `response` is text or a producer taking the record.
        Re-using an id replaces that rule in place.
        """
        rule_id = id or self._default_id()
        rule = AutoResponderRule(
            id=rule_id,
            trigger=as_trigger(trigger),
            response=as_response(response),
            enabled=enabled,
            created_at=datetime.now(timezone.utc),
            description=description,
        )
        self._rules[rule_id] = rule
        logger.info("Auto-responder added: %s", rule_id)
        return rule_id

    def _default_id(self) -> str:
        base = f"responder_{int(time.time() * 1000)}"
        rule_id, n = base, 1
        while rule_id in self._rules:
            rule_id = f"{base}_{n}"
            n += 1
        return rule_id

    def remove_responder(self, rule_id: str) -> bool:
        removed = self._rules.pop(rule_id, None) is not None
        if removed:
            logger.info("Auto-responder removed: %s", rule_id)
        return removed

    def toggle_responder(self, rule_id: str, enabled: bool) -> bool:
        rule = self._rules.get(rule_id)
        if rule is None:
            return False
        rule.enabled = enabled
        logger.info("Auto-responder %s %s", rule_id, "enabled" if enabled else "disabled")
        return True

    def list_responders(self) -> list[ResponderInfo]:
        return [
            ResponderInfo(
                id=rule.id,
                trigger=rule.trigger.describe(),
                trigger_kind=rule.trigger.kind,
                response=describe_response(rule.response),
                enabled=rule.enabled,
                created_at=rule.created_at,
                description=rule.description,
            )
            for rule in self._rules.values()
        ]

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    async def process_message(self, record: MessageRecord) -> None:
        """Message handler: applies the group and own-message policies."""
        if record.from_self:
            logger.debug("Skipping own message %s", record.id)
            return
        if record.is_group and not self.process_group_messages:
            logger.debug("Skipping group message %s", record.id)
            return
        await self.match_and_respond(record)

    def find_match(self, record: MessageRecord) -> Optional[AutoResponderRule]:
        if record.kind is not MessageKind.CHAT:
            return None
        text = record.body.lower().strip()
        for rule in list(self._rules.values()):
            if not rule.enabled:
                continue
            try:
                if rule.trigger.matches(text):
                    return rule
            except Exception:
                logger.exception("Trigger of responder %s failed", rule.id)
        return None

    async def match_and_respond(self, record: MessageRecord) -> Optional[SendResult]:
        """Reply with the first matching rule. Returns the send result, if any."""
        rule = self.find_match(record)
        if rule is None:
            return None

        try:
            response = await rule.response.resolve(record)
        except Exception:
            logger.exception("Response producer of responder %s failed", rule.id)
            return None
        if not response:
            return None

        recipient = strip_conversation_suffix(record.from_address)
        try:
            result = await self._sender.send_direct(recipient, str(response))
        except Exception as e:
            logger.error("Failed to send auto-response to %s: %s", recipient, e)
            return None

        if result.success:
            logger.info(
                "Auto-response sent to %s by %s (trigger %s)",
                recipient, rule.id, rule.trigger.describe(),
            )
        else:
            logger.error("Failed to send auto-response to %s: %s", recipient, result.error)
        return result


def load_responders(responder: AutoResponder, path: Union[str, Path]) -> list[str]:
    """Register rules from a JSON list.

    Each entry has `response` and one of `contains` (substring) or `pattern`
    (case-insensitive regex), plus optional `id`, `enabled`, `description`.
    """
    try:
        entries = json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ValidationError(f"Could not read responders file {path}: {e}") from e
    if not isinstance(entries, list):
        raise ValidationError("Responders file must contain a JSON list")

    ids = []
    for entry in entries:
        if not isinstance(entry, dict) or "response" not in entry:
            raise ValidationError("Each responder needs a response", details={"entry": entry})
        if "pattern" in entry:
            try:
                trigger: Any = re.compile(entry["pattern"], re.IGNORECASE)
            except re.error as e:
                raise ValidationError(f"Bad pattern {entry['pattern']!r}: {e}") from e
        elif "contains" in entry:
            trigger = entry["contains"]
        else:
            raise ValidationError("Each responder needs `contains` or `pattern`", details={"entry": entry})
        ids.append(responder.add_responder(
            trigger,
            entry["response"],
            id=entry.get("id"),
            enabled=entry.get("enabled", True),
            description=entry.get("description", ""),
        ))
    return ids
