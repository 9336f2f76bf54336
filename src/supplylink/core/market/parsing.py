"""
Parsing utilities for user-entered market values.

Quantities and prices arrive as free text from the CLI or as JSON numbers
from the data store; both are normalized to ``Decimal``.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import InvalidInputError
from .models import Unit


CURRENCY_SYMBOLS = ("₹", "RS.", "RS", "INR")

# Decimal places kept for stored values
PRICE_PLACES = 2
QUANTITY_PLACES = 3


# =============================================================================
# Numbers
# =============================================================================


def parse_number(value: str | int | float | Decimal | None) -> Decimal | None:
    """Parse a number from text or a numeric value.

    Handles:
    - Plain numbers ("18", "18.5")
    - Thousands separators ("1,250")
    - Rupee prefixes ("₹18", "Rs. 18", "INR 18")

    Args:
        value: Raw value

    Returns:
        Parsed Decimal, or None if the value is not a finite number
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        return value if value.is_finite() else None

    if isinstance(value, (int, float)):
        try:
            parsed = Decimal(str(value))
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None

    text = normalize_whitespace(str(value)).upper()
    for symbol in CURRENCY_SYMBOLS:
        if text.startswith(symbol):
            text = text[len(symbol):].strip()
            break

    text = text.replace(",", "")
    if not re.fullmatch(r"[-+]?(\d+(\.\d*)?|\.\d+)", text):
        return None

    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def parse_positive(value: Any, field_name: str, places: int | None = None) -> Decimal:
    """Parse a strictly positive number or raise InvalidInputError.

    With ``places`` set, values needing more decimal places are rejected
    rather than rounded.
    """
    parsed = parse_number(value)
    if parsed is None:
        raise InvalidInputError(f"{field_name} must be a number, got {value!r}")
    if places is not None:
        ensure_places(parsed, places, field_name)
    if parsed <= 0:
        raise InvalidInputError(f"{field_name} must be greater than zero, got {parsed}")
    return parsed


def ensure_places(value: Decimal, places: int, field_name: str) -> Decimal:
    """Return ``value`` unchanged if it has at most ``places`` decimal places.

    Raises:
        InvalidInputError: If storing it would round it
    """
    try:
        fitted = value.quantize(Decimal(1).scaleb(-places))
    except InvalidOperation:
        raise InvalidInputError(f"{field_name} is too large, got {value}") from None
    if fitted != value:
        raise InvalidInputError(f"{field_name} allows at most {places} decimal places, got {value}")
    return value


# =============================================================================
# Text and Enums
# =============================================================================


def normalize_whitespace(text: str | None) -> str:
    """Collapse runs of whitespace and strip."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def parse_text(value: Any, field_name: str) -> str:
    """Require a non-empty text value."""
    text = normalize_whitespace(str(value)) if value is not None else ""
    if not text:
        raise InvalidInputError(f"{field_name} is required")
    return text


def parse_unit(value: Unit | str | None) -> Unit:
    """Parse a unit of measure.

    Accepts the canonical values plus a few common spellings.
    """
    if isinstance(value, Unit):
        return value

    text = normalize_whitespace(value).lower()
    text = UNIT_ALIASES.get(text, text)
    try:
        return Unit(text)
    except ValueError:
        allowed = ", ".join(u.value for u in Unit)
        raise InvalidInputError(f"Unknown unit {value!r} (expected one of: {allowed})") from None


UNIT_ALIASES = {
    "kgs": "kg",
    "kilogram": "kg",
    "kilograms": "kg",
    "g": "grams",
    "gram": "grams",
    "l": "liters",
    "litre": "liters",
    "litres": "liters",
    "liter": "liters",
    "pc": "pieces",
    "pcs": "pieces",
    "piece": "pieces",
    "bag": "bags",
    "m": "meters",
    "meter": "meters",
    "metre": "meters",
    "metres": "meters",
}


# =============================================================================
# Timestamps
# =============================================================================


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO 8601 timestamp as sent by the data store."""
    if value is None or isinstance(value, datetime):
        return value

    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
