from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..crud.inventory import count_items, count_low_stock, total_stock_value
from ..crud.projects import status_counts
from ..crud.tools import count_tools
from ..models.transaction import CHECKOUT, RESTOCK, InventoryTransaction
from .money import quantize_currency, to_decimal
from .timecalc import default_report_range, month_key, range_bounds


def resolve_range(start: date | None = None, end: date | None = None) -> tuple[date, date]:
    """Fill in whichever end of the reporting window was left blank."""

    default_start, default_end = default_report_range(months=settings.REPORT_LOOKBACK_MONTHS)
    start = start or default_start
    end = end or default_end
    if end < start:
        raise ValueError("end date is before start date")
    return start, end


def _transactions(db: Session, start: date, end: date, transaction_type: str | None = CHECKOUT) -> List[InventoryTransaction]:
    low, high = range_bounds(start, end)
    stmt = select(InventoryTransaction).where(
        InventoryTransaction.created_at >= low,
        InventoryTransaction.created_at <= high,
    )
    if transaction_type:
        stmt = stmt.where(InventoryTransaction.transaction_type == transaction_type)
    stmt = stmt.order_by(InventoryTransaction.created_at, InventoryTransaction.id)
    return db.execute(stmt).unique().scalars().all()


def most_used_items(db: Session, start: date, end: date, limit: int | None = None) -> List[Dict[str, Any]]:
    """Checked-out material in the window, grouped by SKU, costliest first."""

    limit = settings.TOP_ITEMS_LIMIT if limit is None else limit
    buckets: Dict[str, Dict[str, Any]] = {}
    for row in _transactions(db, start, end):
        sku = row.item_sku or f"#{row.inventory_item_id}"
        bucket = buckets.setdefault(
            sku,
            {
                "item_name": row.item_name or "Unknown",
                "item_sku": sku,
                "total_quantity": 0,
                "_cost": Decimal("0"),
                "transaction_count": 0,
            },
        )
        bucket["total_quantity"] += row.quantity
        bucket["_cost"] += to_decimal(row.total_cost)
        bucket["transaction_count"] += 1

    ranked = sorted(buckets.values(), key=lambda b: b["_cost"], reverse=True)[:limit]
    return [_finish(bucket) for bucket in ranked]


def project_expenses(db: Session, start: date, end: date) -> List[Dict[str, Any]]:
    buckets: Dict[int, Dict[str, Any]] = {}
    for row in _transactions(db, start, end):
        if row.project_id is None:
            continue
        bucket = buckets.setdefault(
            row.project_id,
            {
                "project_id": row.project_id,
                "project_name": row.project_name or "Unknown",
                "_cost": Decimal("0"),
                "item_count": 0,
            },
        )
        bucket["_cost"] += to_decimal(row.total_cost)
        bucket["item_count"] += 1
    ranked = sorted(buckets.values(), key=lambda b: b["_cost"], reverse=True)
    return [_finish(bucket) for bucket in ranked]


def monthly_usage(db: Session, start: date, end: date) -> List[Dict[str, Any]]:
    buckets: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"_cost": Decimal("0"), "transaction_count": 0})
    for row in _transactions(db, start, end):
        bucket = buckets[month_key(row.created_at)]
        bucket["_cost"] += to_decimal(row.total_cost)
        bucket["transaction_count"] += 1
    return [_finish({"month": month, **buckets[month]}) for month in sorted(buckets)]


def period_summary(db: Session, start: date, end: date) -> Dict[str, Any]:
    received = Decimal("0")
    used = Decimal("0")
    units_in = 0
    units_out = 0
    items: set[int] = set()
    for row in _transactions(db, start, end, transaction_type=None):
        items.add(row.inventory_item_id)
        if row.transaction_type == RESTOCK:
            received += to_decimal(row.total_cost)
            units_in += row.quantity
        else:
            used += to_decimal(row.total_cost)
            units_out += row.quantity
    return {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "received_cost": float(quantize_currency(received)),
        "checkout_cost": float(quantize_currency(used)),
        "net_cost": float(quantize_currency(received - used)),
        "units_received": units_in,
        "units_checked_out": units_out,
        "net_units": units_in - units_out,
        "distinct_items": len(items),
    }


def build_report(db: Session, start: date | None = None, end: date | None = None) -> Dict[str, Any]:
    start, end = resolve_range(start, end)
    return {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "most_used_items": most_used_items(db, start, end),
        "project_expenses": project_expenses(db, start, end),
        "monthly_usage": monthly_usage(db, start, end),
        "summary": period_summary(db, start, end),
    }


def dashboard_stats(db: Session) -> Dict[str, Any]:
    return {
        "total_items": count_items(db),
        "low_stock_items": count_low_stock(db),
        "total_tools": count_tools(db),
        "active_projects": status_counts(db)["active"],
        "total_stock_value": total_stock_value(db),
    }


def _finish(bucket: Dict[str, Any]) -> Dict[str, Any]:
    out = {key: value for key, value in bucket.items() if not key.startswith("_")}
    out["total_cost"] = float(quantize_currency(bucket["_cost"]))
    return out

