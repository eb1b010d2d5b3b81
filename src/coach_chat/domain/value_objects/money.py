"""Integer minor-unit money.

Prices are stored as integers in the currency's minor unit together with an
upper-case ISO 4217 code. Major-unit input (what a coach types) goes through
``to_minor_units`` exactly once.
"""
from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")

# Currencies without a minor unit. Everything else uses two decimals.
_ZERO_DECIMAL = frozenset({"JPY", "KRW", "VND", "CLP", "ISK"})

_SYMBOLS = {
    "GBP": "£",
    "EUR": "€",
    "USD": "$",
    "AUD": "A$",
    "CAD": "CA$",
    "NZD": "NZ$",
    "JPY": "¥",
    "INR": "₹",
}


def normalize_currency(code: str) -> str:
    normalized = code.strip().upper()
    if not _CURRENCY_RE.match(normalized):
        raise ValueError(f"Invalid currency code: {code!r}")
    return normalized


def currency_exponent(currency: str) -> int:
    return 0 if normalize_currency(currency) in _ZERO_DECIMAL else 2


def to_minor_units(amount: Decimal | int | float | str, currency: str) -> int:
    """Convert a major-unit amount to an integer of minor units (half-up)."""
    try:
        # str() first so 49.99 stays 49.99 rather than its binary expansion
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {amount!r}") from exc
    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")
    if value < 0:
        raise ValueError("Amount must not be negative")
    scaled = value.scaleb(currency_exponent(currency))
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_money(amount_minor: int, currency: str) -> str:
    code = normalize_currency(currency)
    exponent = currency_exponent(code)
    major = Decimal(amount_minor).scaleb(-exponent)
    number = f"{major:,.{exponent}f}"
    symbol = _SYMBOLS.get(code)
    if symbol is None:
        return f"{number} {code}"
    return f"{symbol}{number}"

