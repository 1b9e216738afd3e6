"""CRUD helpers for stocked inventory items."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.skus import normalize_sku, sku_aliases
from ..models.inventory import InventoryItem
from ..models.pricing import PricingRule
from ..models.reconciliation import ReconciliationItem
from ..models.transaction import InventoryTransaction
from ..services.money import quantize_currency, to_decimal
from ..services.timecalc import utcnow_iso

TEXT_FIELDS = ("name", "description", "unit", "supplier", "category")
OPTIONAL_TEXT_FIELDS = ("description", "supplier", "category")


def normalize_amount(value: object) -> float | None:
    """Convert user-entered currency values to a float or ``None`` if blank/invalid."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        cleaned = value.strip().replace("$", "").replace(",", "")
        if not cleaned:
            return None
        try:
            return float(Decimal(cleaned))
        except InvalidOperation:
            return None
    return None


def coerce_quantity(value: object, field: str = "quantity") -> int:
    """Whole, non-negative unit counts. Blank means zero."""

    if value is None or value == "":
        return 0
    try:
        number = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field} must be a whole number") from exc
    if number < 0:
        raise ValueError(f"{field} must not be negative")
    return number


def _clean_payload(payload: dict, *, partial: bool) -> dict:
    data: dict = {}
    for field in TEXT_FIELDS:
        if field in payload:
            value = payload.get(field)
            value = value.strip() if isinstance(value, str) else value
            if field in OPTIONAL_TEXT_FIELDS:
                value = value or None
            data[field] = value

    if "name" in data or not partial:
        if not data.get("name"):
            raise ValueError("name is required")
    if "unit" in data or not partial:
        data["unit"] = data.get("unit") or settings.DEFAULT_UNIT

    if "sku" in payload or not partial:
        sku = normalize_sku(payload.get("sku"))
        if not sku:
            raise ValueError("sku is required")
        data["sku"] = sku

    if "unit_cost" in payload or not partial:
        raw_cost = payload.get("unit_cost")
        cost = normalize_amount(raw_cost)
        if cost is None and raw_cost not in (None, ""):
            raise ValueError("unit_cost must be a number")
        cost = cost or 0.0
        if cost < 0:
            raise ValueError("unit_cost must not be negative")
        data["unit_cost"] = cost

    for field in ("current_stock", "minimum_stock"):
        if field in payload or not partial:
            data[field] = coerce_quantity(payload.get(field), field)
    return data


def _ensure_unique_sku(db: Session, sku: str, exclude_id: int | None = None) -> None:
    stmt = select(InventoryItem.id).where(InventoryItem.sku == sku)
    if exclude_id is not None:
        stmt = stmt.where(InventoryItem.id != exclude_id)
    if db.execute(stmt).first():
        raise ValueError(f"sku {sku} is already in use")


def list_items(
    db: Session,
    *,
    search: str | None = None,
    category: str | None = None,
    low_stock_only: bool = False,
    limit: int | None = None,
    offset: int = 0,
) -> list[InventoryItem]:
    """Items ordered by name, optionally filtered the way the inventory screen filters."""

    stmt = select(InventoryItem)
    term = (search or "").strip().lower()
    if term:
        pattern = f"%{term}%"
        stmt = stmt.where(
            or_(
                func.lower(InventoryItem.name).like(pattern),
                func.lower(InventoryItem.sku).like(pattern),
                func.lower(func.coalesce(InventoryItem.description, "")).like(pattern),
            )
        )
    if category:
        stmt = stmt.where(InventoryItem.category == category)
    if low_stock_only:
        stmt = stmt.where(InventoryItem.current_stock <= InventoryItem.minimum_stock)
    stmt = stmt.order_by(InventoryItem.name, InventoryItem.id).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return db.execute(stmt).scalars().all()


def get_item(db: Session, item_id: int) -> InventoryItem | None:
    return db.get(InventoryItem, item_id)


def get_item_by_sku(db: Session, sku: str | None) -> InventoryItem | None:
    for candidate in sku_aliases(sku):
        item = db.execute(select(InventoryItem).where(InventoryItem.sku == candidate)).scalars().first()
        if item:
            return item
    return None


def create_item(db: Session, payload: dict) -> InventoryItem:
    data = _clean_payload(payload, partial=False)
    _ensure_unique_sku(db, data["sku"])
    now = utcnow_iso()
    item = InventoryItem(**data, created_at=now, updated_at=now)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def update_item(db: Session, item: InventoryItem, payload: dict) -> InventoryItem:
    """Apply a partial update. Unknown keys are ignored."""

    data = _clean_payload(payload, partial=True)
    if "sku" in data and data["sku"] != item.sku:
        _ensure_unique_sku(db, data["sku"], exclude_id=item.id)
    for key, value in data.items():
        setattr(item, key, value)
    item.updated_at = utcnow_iso()
    db.commit()
    db.refresh(item)
    return item


def delete_item(db: Session, item: InventoryItem) -> None:
    """Remove an item together with the history rows that point at it."""

    db.execute(delete(InventoryTransaction).where(InventoryTransaction.inventory_item_id == item.id))
    db.execute(delete(ReconciliationItem).where(ReconciliationItem.inventory_item_id == item.id))
    db.execute(delete(PricingRule).where(PricingRule.inventory_item_id == item.id))
    db.delete(item)
    db.commit()


def list_categories(db: Session) -> list[str]:
    stmt = (
        select(InventoryItem.category)
        .where(InventoryItem.category.is_not(None), InventoryItem.category != "")
        .distinct()
        .order_by(InventoryItem.category)
    )
    return [row[0] for row in db.execute(stmt).all()]


def count_items(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(InventoryItem)) or 0


def count_low_stock(db: Session) -> int:
    stmt = select(func.count()).select_from(InventoryItem).where(
        InventoryItem.current_stock <= InventoryItem.minimum_stock
    )
    return db.scalar(stmt) or 0


def total_stock_value(db: Session) -> float:
    total = Decimal("0")
    for current, cost in db.execute(select(InventoryItem.current_stock, InventoryItem.unit_cost)).all():
        total += to_decimal(cost) * (current or 0)
    return float(quantize_currency(total))
