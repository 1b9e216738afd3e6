"""Receiving and checking out stock.

A submission (one cart) becomes one ``batch_id`` worth of transaction rows.
The history rows and the ``current_stock`` changes of a submission are
written in a single database transaction: either every line lands or none do.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Mapping
from uuid import uuid4

from sqlalchemy import desc, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import InactiveProjectError, InsufficientStockError, NotFoundError
from ..db.session import atomic
from ..models.inventory import InventoryItem
from ..models.project import Project
from ..models.transaction import CHECKOUT, RESTOCK, TRANSACTION_TYPES, InventoryTransaction
from ..services.timecalc import range_bounds, utcnow_iso
from .inventory import coerce_quantity, normalize_amount

logger = logging.getLogger(__name__)


def _merge_lines(lines: Iterable[Mapping], *, with_cost: bool) -> list[dict]:
    """Collapse repeated items into one line, keeping first-seen order.

    Quantities add up; for receiving, the last unit cost given wins.
    """

    merged: dict[int, dict] = {}
    for raw in lines:
        try:
            item_id = int(raw.get("inventory_item_id"))
        except (TypeError, ValueError) as exc:
            raise ValueError("inventory_item_id is required on every line") from exc
        quantity = coerce_quantity(raw.get("quantity"))
        if quantity <= 0:
            raise ValueError("quantity must be greater than zero")
        line = merged.setdefault(item_id, {"inventory_item_id": item_id, "quantity": 0, "unit_cost": None})
        line["quantity"] += quantity
        if with_cost and raw.get("unit_cost") not in (None, ""):
            cost = normalize_amount(raw.get("unit_cost"))
            if cost is None:
                raise ValueError("unit_cost must be a number")
            if cost < 0:
                raise ValueError("unit_cost must not be negative")
            line["unit_cost"] = cost
    if not merged:
        raise ValueError("add at least one item")
    return list(merged.values())


def _line_total(quantity: int, unit_cost: float) -> float:
    return round(quantity * unit_cost, 2)


def _load_item(db: Session, item_id: int) -> InventoryItem:
    item = db.get(InventoryItem, item_id)
    if not item:
        raise NotFoundError("Inventory item", item_id)
    return item


def decrease_stock(db: Session, item_id: int, quantity: int, *, updated_at: str | None = None) -> bool:
    """Conditionally take ``quantity`` units off an item.

    A single guarded UPDATE, so two concurrent checkouts can never push stock
    below zero. Returns ``False`` when there was not enough on hand. Does not
    commit; callers run it inside their own transaction.
    """

    if quantity <= 0:
        raise ValueError("quantity must be greater than zero")
    stmt = (
        update(InventoryItem)
        .where(InventoryItem.id == item_id, InventoryItem.current_stock >= quantity)
        .values(
            current_stock=InventoryItem.current_stock - quantity,
            updated_at=updated_at or utcnow_iso(),
        )
        .execution_options(synchronize_session=False)
    )
    changed = db.execute(stmt).rowcount == 1
    item = db.get(InventoryItem, item_id)
    if changed and item is not None:
        db.expire(item, ["current_stock", "updated_at"])
    return changed


def _submit(db: Session, action: str, work) -> list[InventoryTransaction]:
    try:
        with atomic(db):
            rows = work()
    except ValueError as exc:
        logger.warning("inventory.%s.rejected", action, extra={"extra_data": {"reason": str(exc)}})
        raise
    except SQLAlchemyError:
        logger.exception("inventory.%s.failed", action)
        raise
    for row in rows:
        db.refresh(row)
    return rows


def receive_items(
    db: Session,
    lines: Iterable[Mapping],
    *,
    created_by: str,
    notes: str | None = None,
) -> list[InventoryTransaction]:
    """Book a delivery: add stock, log ``restock`` rows and adopt the latest unit cost."""

    merged = _merge_lines(lines, with_cost=True)
    batch_id = uuid4().hex
    note = (notes or "").strip() or None

    def work() -> list[InventoryTransaction]:
        now = utcnow_iso()
        rows = []
        for line in merged:
            item = _load_item(db, line["inventory_item_id"])
            unit_cost = line["unit_cost"] if line["unit_cost"] is not None else float(item.unit_cost or 0.0)
            row = InventoryTransaction(
                inventory_item_id=item.id,
                project_id=None,
                quantity=line["quantity"],
                unit_cost=unit_cost,
                total_cost=_line_total(line["quantity"], unit_cost),
                transaction_type=RESTOCK,
                notes=note,
                created_by=created_by,
                created_at=now,
                batch_id=batch_id,
            )
            db.add(row)
            item.current_stock = (item.current_stock or 0) + line["quantity"]
            item.unit_cost = unit_cost
            item.updated_at = now
            rows.append(row)
        return rows

    rows = _submit(db, "receive", work)
    logger.info(
        "inventory.received",
        extra={"extra_data": {"batch_id": batch_id, "lines": len(rows), "total_cost": sum(r.total_cost for r in rows)}},
    )
    return rows


def checkout_items(
    db: Session,
    project_id: int | None,
    lines: Iterable[Mapping],
    *,
    created_by: str,
    notes: str | None = None,
) -> list[InventoryTransaction]:
    """Charge material to an active project and take it off the shelf."""

    if not project_id:
        raise ValueError("select a project")
    project = db.get(Project, project_id)
    if not project:
        raise NotFoundError("Project", project_id)
    if project.status != "active":
        raise InactiveProjectError(project.id, project.status)

    merged = _merge_lines(lines, with_cost=False)
    batch_id = uuid4().hex
    note = (notes or "").strip() or None

    def work() -> list[InventoryTransaction]:
        now = utcnow_iso()
        rows = []
        for line in merged:
            item = _load_item(db, line["inventory_item_id"])
            quantity = line["quantity"]
            available = item.current_stock or 0
            unit_cost = float(item.unit_cost or 0.0)
            if not decrease_stock(db, item.id, quantity, updated_at=now):
                raise InsufficientStockError(item.id, quantity, available, name=item.name)
            row = InventoryTransaction(
                inventory_item_id=item.id,
                project_id=project.id,
                quantity=quantity,
                unit_cost=unit_cost,
                total_cost=_line_total(quantity, unit_cost),
                transaction_type=CHECKOUT,
                notes=note,
                created_by=created_by,
                created_at=now,
                batch_id=batch_id,
            )
            db.add(row)
            rows.append(row)
        return rows

    rows = _submit(db, "checkout", work)
    logger.info(
        "inventory.checked_out",
        extra={
            "extra_data": {
                "batch_id": batch_id,
                "project_id": project.id,
                "lines": len(rows),
                "total_cost": sum(r.total_cost for r in rows),
            }
        },
    )
    return rows


LOOSE_BATCH_PREFIX = "tx-"


def _batch_key(row: InventoryTransaction) -> str:
    return row.batch_id or f"{LOOSE_BATCH_PREFIX}{row.id}"


def _batch_rows(db: Session, batch_id: str) -> list[InventoryTransaction]:
    stmt = select(InventoryTransaction)
    loose_id = batch_id[len(LOOSE_BATCH_PREFIX):] if batch_id.startswith(LOOSE_BATCH_PREFIX) else ""
    if loose_id.isdigit():
        # Rows logged without a batch are listed under their own id.
        stmt = stmt.where(InventoryTransaction.id == int(loose_id), InventoryTransaction.batch_id.is_(None))
    else:
        stmt = stmt.where(InventoryTransaction.batch_id == batch_id)
    return db.execute(stmt).scalars().all()


def void_batch(db: Session, batch_id: str) -> int:
    """Delete a submission's rows and undo their effect on stock.

    Stock never goes below zero when a delivery is voided after some of it
    was already used. Returns the number of rows removed.
    """

    rows = _batch_rows(db, batch_id)
    if not rows:
        raise NotFoundError("Batch", batch_id)

    def work() -> None:
        now = utcnow_iso()
        for row in rows:
            item = _load_item(db, row.inventory_item_id)
            item.current_stock = max(0, (item.current_stock or 0) - row.stock_change)
            item.updated_at = now
            db.delete(row)

    try:
        with atomic(db):
            work()
    except SQLAlchemyError:
        logger.exception("inventory.void.failed", extra={"extra_data": {"batch_id": batch_id}})
        raise
    logger.info("inventory.voided", extra={"extra_data": {"batch_id": batch_id, "lines": len(rows)}})
    return len(rows)


def list_transactions(
    db: Session,
    *,
    transaction_type: str | None = None,
    project_id: int | None = None,
    item_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
    limit: int | None = 200,
    offset: int = 0,
) -> list[InventoryTransaction]:
    """History rows newest first."""

    stmt = select(InventoryTransaction)
    if transaction_type:
        if transaction_type not in TRANSACTION_TYPES:
            raise ValueError(f"transaction_type must be one of {', '.join(TRANSACTION_TYPES)}")
        stmt = stmt.where(InventoryTransaction.transaction_type == transaction_type)
    if project_id is not None:
        stmt = stmt.where(InventoryTransaction.project_id == project_id)
    if item_id is not None:
        stmt = stmt.where(InventoryTransaction.inventory_item_id == item_id)
    if start or end:
        low, high = range_bounds(start or date.min, end or date.max)
        stmt = stmt.where(InventoryTransaction.created_at >= low, InventoryTransaction.created_at <= high)
    stmt = stmt.order_by(desc(InventoryTransaction.created_at), desc(InventoryTransaction.id)).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return db.execute(stmt).unique().scalars().all()


def list_batches(db: Session, *, transaction_type: str | None = None, limit: int = 50) -> list[dict]:
    """Recent submissions, one summary row per batch, newest first."""

    rows = list_transactions(db, transaction_type=transaction_type, limit=None)
    batches: dict[str, dict] = {}
    for row in rows:
        key = _batch_key(row)
        summary = batches.get(key)
        if summary is None:
            if len(batches) >= limit:
                continue
            summary = batches[key] = {
                "batch_id": key,
                "transaction_type": row.transaction_type,
                "created_at": row.created_at,
                "created_by": row.created_by,
                "project_id": row.project_id,
                "project_name": row.project_name,
                "notes": row.notes,
                "line_count": 0,
                "total_quantity": 0,
                "total_cost": 0.0,
            }
        summary["line_count"] += 1
        summary["total_quantity"] += row.quantity
        summary["total_cost"] = round(summary["total_cost"] + (row.total_cost or 0.0), 2)
    return list(batches.values())
