"""Utilities for turning form input into Decimal amounts."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import re
from typing import Any, Union

ZERO = Decimal("0")
CENT = Decimal("0.01")

_CURRENCY_PATTERN = re.compile(r"(?i)\b(usd|bdt|eur|tk)\b|[$€£৳]")


def normalize_decimal(text: str) -> Decimal:
    """Normalize a typed numeric string to Decimal.

    Rules:
    - Trim whitespace and currency markers
    - Remove commas and spaces used as thousand separators
    - Support a leading '-'
    - Raise ValueError for invalid formats
    """
    if text is None:
        raise ValueError("Input text is None")

    raw = str(text).strip()
    if not raw:
        raise ValueError("Input text is empty")

    negative = False
    if raw.startswith("-"):
        negative = True
        raw = raw[1:].strip()

    cleaned = _CURRENCY_PATTERN.sub("", raw)
    cleaned = re.sub(r"\s+", "", cleaned)
    if not cleaned:
        raise ValueError("Input text has no numeric content")

    # Comma thousand separators only when followed by three digits
    cleaned = re.sub(r"(?<=\d),(?=\d{3}(\D|$))", "", cleaned)

    if not re.fullmatch(r"\d+(\.\d*)?|\.\d+", cleaned):
        raise ValueError(f"Invalid numeric format: {text!r}")

    try:
        value = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric format: {text!r}") from exc

    return -value if negative else value


def to_amount(value: Any) -> Decimal:
    """Lenient conversion used while the user is still typing.

    None, blanks, booleans, NaN/infinity and anything unparseable become 0.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, (int, float)):
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            return ZERO
        return result if result.is_finite() else ZERO
    try:
        return normalize_decimal(str(value))
    except ValueError:
        return ZERO


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents (half up), as shown in the totals panel."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_json_number(value: Decimal) -> Union[int, float]:
    """Convert Decimal to a JSON number: int when integral, else float."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)
