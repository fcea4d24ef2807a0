"""Unit tests for form number parsing."""

from decimal import Decimal

import pytest

from bizdocs.pricing.numbers import normalize_decimal, quantize_money, to_amount, to_json_number


@pytest.mark.parametrize(
    "text,expected",
    [
        ("12", Decimal("12")),
        ("12.50", Decimal("12.50")),
        (".5", Decimal("0.5")),
        ("1,234.50", Decimal("1234.50")),
        ("1,234,567", Decimal("1234567")),
        ("$ 12.5", Decimal("12.5")),
        ("12.5 USD", Decimal("12.5")),
        ("-3", Decimal("-3")),
        ("  7  ", Decimal("7")),
    ],
)
def test_normalize_decimal(text, expected):
    assert normalize_decimal(text) == expected


@pytest.mark.parametrize("text", ["", " ", "-", "abc", "12..3", "1.2.3", "12a"])
def test_normalize_decimal_rejects_invalid(text):
    with pytest.raises(ValueError):
        normalize_decimal(text)


def test_normalize_decimal_rejects_none():
    with pytest.raises(ValueError):
        normalize_decimal(None)


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, Decimal("0")),
        ("", Decimal("0")),
        ("abc", Decimal("0")),
        (True, Decimal("0")),
        (float("nan"), Decimal("0")),
        (float("inf"), Decimal("0")),
        (2.5, Decimal("2.5")),
        (3, Decimal("3")),
        ("7", Decimal("7")),
        (Decimal("1.25"), Decimal("1.25")),
    ],
)
def test_to_amount_is_lenient(value, expected):
    assert to_amount(value) == expected


def test_quantize_money_rounds_half_up():
    assert quantize_money(Decimal("2.345")) == Decimal("2.35")
    assert quantize_money(Decimal("11.5")) == Decimal("11.50")
    assert str(quantize_money(Decimal("241.5"))) == "241.50"


def test_to_json_number():
    assert to_json_number(Decimal("5.0")) == 5
    assert isinstance(to_json_number(Decimal("5.0")), int)
    assert to_json_number(Decimal("2.5")) == 2.5
    assert isinstance(to_json_number(Decimal("2.5")), float)
