"""
Address and message validation.

Addresses are phone numbers; the country-specific rules cover Israeli
mobile numbers (country code 972), other codes get generic formatting.
"""

import re
from typing import Any, Optional

from wa_gateway.errors import ValidationError

CONTACT_SUFFIX = "@c.us"
GROUP_SUFFIX = "@g.us"
DEFAULT_COUNTRY_CODE = "972"
MAX_MESSAGE_LENGTH = 4096

_NON_DIGITS = re.compile(r"\D")


def _digits(number: str) -> str:
    return _NON_DIGITS.sub("", number)


def validate_address(number: Any) -> bool:
    if not number or not isinstance(number, str):
        return False
    cleaned = _digits(number)
    if len(cleaned) < 9 or len(cleaned) > 12:
        return False
    if cleaned.startswith("0"):
        return len(cleaned) == 10 and cleaned.startswith("05")
    if cleaned.startswith("5"):
        return len(cleaned) == 9
    if cleaned.startswith("972"):
        return len(cleaned) == 12
    return True


def format_address(number: str, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """Format a phone number as a contact address, e.g. `972501234567@c.us`."""
    if not number:
        raise ValidationError("Phone number is required")
    cleaned = _digits(number)

    if country_code == "972":
        if cleaned.startswith("0"):
            cleaned = cleaned[1:]
        if cleaned.startswith("972"):
            cleaned = cleaned[3:]
        if len(cleaned) == 9 and cleaned.startswith("5"):
            return f"972{cleaned}{CONTACT_SUFFIX}"
        raise ValidationError("Invalid Israeli mobile number format", details={"number": number})

    if cleaned.startswith(country_code):
        return cleaned + CONTACT_SUFFIX
    return country_code + cleaned + CONTACT_SUFFIX


def validate_message(message: Any, max_length: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Return a list of problems with `message`; empty means valid."""
    if not message:
        return ["Message is required"]
    if not isinstance(message, str):
        return ["Message must be a string"]
    if not message.strip():
        return ["Message cannot be empty"]
    if len(message) > max_length:
        return [f"Message exceeds maximum length of {max_length} characters"]
    return []


def ensure_valid_message(message: Any, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    errors = validate_message(message, max_length)
    if errors:
        raise ValidationError(errors[0], details={"errors": errors})
    return message


def sanitize_input(value: Any, max_length: Optional[int] = None) -> str:
    if not value or not isinstance(value, str):
        return ""
    sanitized = value.strip()
    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]
    return sanitized


def strip_conversation_suffix(address: str) -> str:
    """`972501234567@c.us` -> `972501234567`."""
    return address.split("@", 1)[0]


def is_group_address(address: Optional[str]) -> bool:
    return bool(address) and address.endswith(GROUP_SUFFIX)  # type: ignore[union-attr]
