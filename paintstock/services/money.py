from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

TWOPLACES = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Best-effort conversion of incoming values to Decimal for currency math."""

    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return Decimal("0")
        cleaned = cleaned.replace("$", "").replace(",", "")
        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return Decimal("0")
    return Decimal("0")


def quantize_currency(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP) if value else Decimal("0.00")


def money(value: Any) -> float:
    """Round a currency amount to cents and hand it back as a float for JSON."""

    return float(quantize_currency(to_decimal(value)))


def format_currency(value: Any) -> str:
    amount = quantize_currency(to_decimal(value))
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"
