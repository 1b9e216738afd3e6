"""Markup arithmetic for quoting materials to customers."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from .money import quantize_currency, to_decimal

HUNDRED = Decimal(100)


def retail_price(cost: Any, markup_percentage: Any) -> Decimal:
    """``cost * (1 + markup / 100)`` rounded to cents."""

    cost_d = to_decimal(cost)
    markup = to_decimal(markup_percentage)
    return quantize_currency(cost_d * (1 + markup / HUNDRED))


def markup_percentage(cost: Any, retail: Any) -> Decimal:
    cost_d = to_decimal(cost)
    if cost_d == 0:
        raise ValueError("cost must be non-zero to compute a markup")
    retail_d = to_decimal(retail)
    return quantize_currency((retail_d - cost_d) / cost_d * HUNDRED)


def apply_rule(cost: Any, rule) -> Decimal:
    """Retail price under ``rule``, held inside its minimum/maximum when set.

    With no rule the cost itself is the price.
    """

    if rule is None:
        return quantize_currency(to_decimal(cost))
    price = retail_price(cost, rule.markup_percentage)
    if rule.minimum_price is not None and price < to_decimal(rule.minimum_price):
        price = quantize_currency(to_decimal(rule.minimum_price))
    if rule.maximum_price is not None and price > to_decimal(rule.maximum_price):
        price = quantize_currency(to_decimal(rule.maximum_price))
    return price
