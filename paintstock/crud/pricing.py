"""Per-item pricing rules."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.inventory import InventoryItem
from ..models.pricing import PricingRule
from ..services.pricing import apply_rule, markup_percentage
from .inventory import normalize_amount


def get_pricing_rule(db: Session, item_id: int) -> PricingRule | None:
    return db.execute(select(PricingRule).where(PricingRule.inventory_item_id == item_id)).scalars().first()


def list_pricing_rules(db: Session) -> list[PricingRule]:
    stmt = select(PricingRule).join(InventoryItem).order_by(InventoryItem.name)
    return db.execute(stmt).unique().scalars().all()


def _optional_price(payload: dict, field: str) -> float | None:
    raw = payload.get(field)
    value = normalize_amount(raw)
    if value is None and raw not in (None, ""):
        raise ValueError(f"{field} must be a number")
    if value is not None and value < 0:
        raise ValueError(f"{field} must not be negative")
    return value


def set_pricing_rule(db: Session, item: InventoryItem, payload: dict) -> PricingRule:
    """Create or replace the markup rule for ``item``."""

    markup = normalize_amount(payload.get("markup_percentage"))
    if markup is None:
        raise ValueError("markup_percentage is required")
    if markup < -100:
        raise ValueError("markup_percentage must be at least -100")
    minimum = _optional_price(payload, "minimum_price")
    maximum = _optional_price(payload, "maximum_price")
    if minimum is not None and maximum is not None and maximum < minimum:
        raise ValueError("maximum_price is below minimum_price")

    rule = get_pricing_rule(db, item.id)
    if rule is None:
        rule = PricingRule(inventory_item_id=item.id)
        db.add(rule)
    rule.markup_percentage = markup
    rule.minimum_price = minimum
    rule.maximum_price = maximum
    db.commit()
    db.refresh(rule)
    return rule


def delete_pricing_rule(db: Session, rule: PricingRule) -> None:
    db.delete(rule)
    db.commit()


def item_price_quote(db: Session, item: InventoryItem) -> dict:
    rule = get_pricing_rule(db, item.id)
    price = apply_rule(item.unit_cost, rule)
    effective_markup = None
    if item.unit_cost:
        effective_markup = float(markup_percentage(item.unit_cost, price))
    return {
        "inventory_item_id": item.id,
        "name": item.name,
        "sku": item.sku,
        "unit_cost": float(item.unit_cost or 0.0),
        "markup_percentage": rule.markup_percentage if rule else None,
        "minimum_price": rule.minimum_price if rule else None,
        "maximum_price": rule.maximum_price if rule else None,
        "retail_price": float(price),
        "effective_markup": effective_markup,
    }
