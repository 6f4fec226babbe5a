"""
Validation helpers shared by schemas and services.
"""

import re
from typing import Iterable, Optional


WHATSAPP_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")


def is_valid_whatsapp(number: str) -> bool:
    """
    Check a WhatsApp contact number.

    An empty value is accepted (no contact given); otherwise the number must
    have an E.164 shape: optional leading '+', no leading zero, 2 to 15 digits.
    """
    return not number or bool(WHATSAPP_PATTERN.match(number))


def clean_text(value: Optional[str]) -> str:
    """Strip surrounding whitespace, mapping None to an empty string."""
    return (value or "").strip()


def join_address(parts: Iterable[Optional[str]]) -> str:
    """Comma-join the non-empty parts of an address, preserving order."""
    return ", ".join(part for part in (clean_text(p) for p in parts) if part)


def is_valid_coordinate_pair(latitude: float, longitude: float) -> bool:
    """Check latitude/longitude ranges."""
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0
