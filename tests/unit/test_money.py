from __future__ import annotations

from decimal import Decimal

import pytest

from coach_chat.domain.value_objects.money import (
    currency_exponent,
    format_money,
    normalize_currency,
    to_minor_units,
)


@pytest.mark.parametrize(
    ("amount", "currency", "expected"),
    [
        (Decimal("49.99"), "GBP", 4999),
        (49.99, "GBP", 4999),
        ("1200", "EUR", 120000),
        ("0.005", "USD", 1),
        (500, "JPY", 500),
        ("499.5", "JPY", 500),
    ],
)
def test_to_minor_units(amount, currency, expected):
    assert to_minor_units(amount, currency) == expected


def test_to_minor_units_rejects_negative():
    with pytest.raises(ValueError):
        to_minor_units("-1", "GBP")


def test_to_minor_units_rejects_garbage():
    with pytest.raises(ValueError):
        to_minor_units("forty", "GBP")


def test_format_money_known_symbols():
    assert format_money(4999, "GBP") == "£49.99"
    assert format_money(120000, "GBP") == "£1,200.00"
    assert format_money(500, "JPY") == "¥500"
    assert format_money(1999, "usd") == "$19.99"


def test_format_money_unknown_code_falls_back_to_suffix():
    assert format_money(1250, "XYZ") == "12.50 XYZ"


def test_price_integrity_roundtrip():
    """A coach types 49.99 once; every later rendering shows the same price."""
    currency = normalize_currency("gbp")
    amount_minor = to_minor_units("49.99", currency)
    assert currency == "GBP"
    assert amount_minor == 4999
    assert format_money(amount_minor, currency) == "£49.99"


def test_currency_helpers():
    assert normalize_currency(" eur ") == "EUR"
    assert currency_exponent("KRW") == 0
    assert currency_exponent("GBP") == 2
    with pytest.raises(ValueError):
        normalize_currency("POUNDS")
