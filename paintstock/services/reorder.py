"""Reorder sheet: what to buy back for items at or under their minimum."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.inventory import InventoryItem
from .money import quantize_currency, to_decimal

NO_SUPPLIER = "No supplier"


def recommended_order(current_stock: int, minimum_stock: int) -> int:
    """Bring stock back up to twice the minimum, and never order less than the minimum."""

    current = current_stock or 0
    minimum = minimum_stock or 0
    return max(minimum * 2 - current, minimum)


def _override_for(overrides: Mapping | None, item_id: int) -> int | None:
    if not overrides:
        return None
    raw = overrides.get(item_id, overrides.get(str(item_id)))
    if raw is None or raw == "":
        return None
    try:
        return max(0, int(raw))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"order quantity for item {item_id} must be a whole number") from exc


def build_reorder_sheet(db: Session, overrides: Mapping | None = None) -> Dict[str, Any]:
    """Low-stock items with a suggested order quantity and cost.

    ``overrides`` maps item id to a hand-edited order quantity; negative
    values are treated as zero.
    """

    stmt = (
        select(InventoryItem)
        .where(InventoryItem.current_stock <= InventoryItem.minimum_stock)
        .order_by(InventoryItem.name, InventoryItem.id)
    )
    items = db.execute(stmt).scalars().all()

    lines = []
    groups: Dict[str, Dict[str, Any]] = {}
    total_units = 0
    total_cost = Decimal("0")
    for item in items:
        suggested = recommended_order(item.current_stock, item.minimum_stock)
        override = _override_for(overrides, item.id)
        quantity = suggested if override is None else override
        unit_cost = to_decimal(item.unit_cost)
        line_cost = quantize_currency(unit_cost * quantity)
        supplier = (item.supplier or "").strip() or NO_SUPPLIER
        line = {
            "inventory_item_id": item.id,
            "name": item.name,
            "sku": item.sku,
            "current_stock": item.current_stock or 0,
            "minimum_stock": item.minimum_stock or 0,
            "suggested_order": suggested,
            "recommended_order": quantity,
            "unit": item.unit,
            "unit_cost": float(quantize_currency(unit_cost)),
            "line_cost": float(line_cost),
            "supplier": supplier,
            "category": item.category,
        }
        lines.append(line)
        group = groups.setdefault(supplier, {"supplier": supplier, "lines": [], "_subtotal": Decimal("0")})
        group["lines"].append(line)
        group["_subtotal"] += line_cost
        total_units += quantity
        total_cost += line_cost

    supplier_groups = []
    for supplier in sorted(groups, key=lambda name: (name == NO_SUPPLIER, name.lower())):
        group = groups[supplier]
        supplier_groups.append(
            {
                "supplier": supplier,
                "lines": group["lines"],
                "item_count": len(group["lines"]),
                "subtotal": float(quantize_currency(group["_subtotal"])),
            }
        )

    return {
        "lines": lines,
        "groups": supplier_groups,
        "item_count": len(lines),
        "total_units": total_units,
        "total_cost": float(quantize_currency(total_cost)),
    }
