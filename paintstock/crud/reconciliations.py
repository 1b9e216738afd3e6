"""Physical stock counts.

A reconciliation records, per counted item, what the system believed was on
hand (``recorded_quantity``) and what was actually on the shelf
(``actual_quantity``), then makes the count the new stored figure.
"""

from __future__ import annotations

import logging
from typing import Mapping

from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..core.errors import NotFoundError
from ..db.session import atomic
from ..models.inventory import InventoryItem
from ..models.reconciliation import Reconciliation, ReconciliationItem
from ..models.transaction import CHECKOUT, RESTOCK, InventoryTransaction
from ..services.timecalc import utcnow_iso
from .inventory import coerce_quantity

logger = logging.getLogger(__name__)


def _movement_total(db: Session, item_id: int, transaction_type: str, since: ReconciliationItem | None = None) -> int:
    stmt = select(func.coalesce(func.sum(InventoryTransaction.quantity), 0)).where(
        InventoryTransaction.inventory_item_id == item_id,
        InventoryTransaction.transaction_type == transaction_type,
    )
    if since is not None:
        if since.last_transaction_id is not None:
            stmt = stmt.where(InventoryTransaction.id > since.last_transaction_id)
        else:
            stmt = stmt.where(InventoryTransaction.created_at > since.created_at)
    return int(db.scalar(stmt) or 0)


def last_transaction_id(db: Session) -> int:
    return int(db.scalar(select(func.max(InventoryTransaction.id))) or 0)


def latest_count(db: Session, item_id: int) -> ReconciliationItem | None:
    stmt = (
        select(ReconciliationItem)
        .where(ReconciliationItem.inventory_item_id == item_id)
        .order_by(desc(ReconciliationItem.created_at), desc(ReconciliationItem.id))
        .limit(1)
    )
    return db.execute(stmt).unique().scalars().first()


def derive_quantity(db: Session, item_id: int) -> int:
    """What the history says should be on hand.

    Starts from the most recent count and replays the restocks and checkouts
    logged after it. Without any count, it is everything received minus
    everything checked out.
    """

    last = latest_count(db, item_id)
    if last is None:
        return _movement_total(db, item_id, RESTOCK) - _movement_total(db, item_id, CHECKOUT)
    return (
        last.actual_quantity
        + _movement_total(db, item_id, RESTOCK, since=last)
        - _movement_total(db, item_id, CHECKOUT, since=last)
    )


def reconciliation_worksheet(db: Session) -> list[dict]:
    """Every item with its stored figure, the figure its history implies, and the drift."""

    rows = []
    for item in db.execute(select(InventoryItem).order_by(InventoryItem.name, InventoryItem.id)).scalars():
        derived = derive_quantity(db, item.id)
        stored = item.current_stock or 0
        rows.append(
            {
                "inventory_item_id": item.id,
                "name": item.name,
                "sku": item.sku,
                "unit": item.unit,
                "current_stock": stored,
                "derived_quantity": derived,
                "drift": stored - derived,
            }
        )
    return rows


def _clean_counts(counts: Mapping) -> dict[int, int]:
    cleaned: dict[int, int] = {}
    for raw_id, raw_qty in (counts or {}).items():
        if raw_qty is None or raw_qty == "":
            continue
        try:
            item_id = int(raw_id)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid item id: {raw_id!r}") from exc
        cleaned[item_id] = coerce_quantity(raw_qty, "counted quantity")
    if not cleaned:
        raise ValueError("enter at least one counted quantity")
    return cleaned


def _apply_counts(db: Session, rec: Reconciliation, counts: dict[int, int], now: str) -> None:
    cutoff = last_transaction_id(db)
    for item_id, actual in counts.items():
        item = db.get(InventoryItem, item_id)
        if item is None:
            raise NotFoundError("Inventory item", item_id)
        rec.items.append(
            ReconciliationItem(
                inventory_item_id=item.id,
                recorded_quantity=item.current_stock or 0,
                actual_quantity=actual,
                last_transaction_id=cutoff,
                created_at=now,
            )
        )
        item.current_stock = actual
        item.updated_at = now


def _write(db: Session, action: str, work) -> None:
    try:
        with atomic(db):
            work()
    except ValueError as exc:
        logger.warning("reconciliation.%s.rejected", action, extra={"extra_data": {"reason": str(exc)}})
        raise
    except SQLAlchemyError:
        logger.exception("reconciliation.%s.failed", action)
        raise


def create_reconciliation(
    db: Session,
    counts: Mapping,
    *,
    reconciled_by: str,
    notes: str | None = None,
) -> Reconciliation:
    cleaned = _clean_counts(counts)
    now = utcnow_iso()
    rec = Reconciliation(reconciled_by=reconciled_by, notes=(notes or "").strip() or None, created_at=now)

    def work() -> None:
        db.add(rec)
        _apply_counts(db, rec, cleaned, now)

    _write(db, "create", work)
    db.refresh(rec)
    logger.info("reconciliation.created", extra={"extra_data": {"id": rec.id, "lines": len(rec.items)}})
    return rec


def update_reconciliation(
    db: Session,
    rec: Reconciliation,
    counts: Mapping,
    *,
    reconciled_by: str | None = None,
    notes: str | None = None,
) -> Reconciliation:
    """Replace a count's lines and apply the corrections to stock.

    Items already on the count move by the difference between the new and
    the old figure, so receipts and checkouts logged since still count.
    Newly added items are set to the counted figure.
    """

    cleaned = _clean_counts(counts)
    now = utcnow_iso()
    previous = {line.inventory_item_id: line for line in rec.items}

    def work() -> None:
        cutoff = last_transaction_id(db)
        for item_id, actual in cleaned.items():
            item = db.get(InventoryItem, item_id)
            if item is None:
                raise NotFoundError("Inventory item", item_id)
            old = previous.get(item_id)
            if old is None:
                recorded = item.current_stock or 0
                item.current_stock = actual
            else:
                recorded = old.recorded_quantity
                item.current_stock = max(0, (item.current_stock or 0) + actual - old.actual_quantity)
            item.updated_at = now
            rec.items.append(
                ReconciliationItem(
                    inventory_item_id=item.id,
                    recorded_quantity=recorded,
                    actual_quantity=actual,
                    last_transaction_id=old.last_transaction_id if old is not None else cutoff,
                    created_at=old.created_at if old is not None else now,
                )
            )
        for line in previous.values():
            rec.items.remove(line)
        if reconciled_by:
            rec.reconciled_by = reconciled_by
        if notes is not None:
            rec.notes = notes.strip() or None
        rec.updated_at = now

    _write(db, "update", work)
    db.refresh(rec)
    return rec


def delete_reconciliation(db: Session, rec: Reconciliation) -> None:
    """Remove a count. Stock figures it set are left as they are."""

    db.delete(rec)
    db.commit()


def get_reconciliation(db: Session, reconciliation_id: int) -> Reconciliation | None:
    stmt = (
        select(Reconciliation)
        .options(selectinload(Reconciliation.items))
        .where(Reconciliation.id == reconciliation_id)
    )
    return db.execute(stmt).scalars().first()


def summarize(rec: Reconciliation) -> str:
    return ", ".join(
        f"{line.item_name or f'item {line.inventory_item_id}'}: {line.recorded_quantity} → {line.actual_quantity}"
        for line in rec.items
    )


def list_reconciliations(db: Session, limit: int = 100, offset: int = 0) -> list[Reconciliation]:
    """Counts newest first, each with a ``summary`` attribute for list views."""

    stmt = (
        select(Reconciliation)
        .options(selectinload(Reconciliation.items))
        .order_by(desc(Reconciliation.created_at), desc(Reconciliation.id))
        .limit(limit)
        .offset(offset)
    )
    recs = db.execute(stmt).scalars().all()
    for rec in recs:
        rec.summary = summarize(rec)
    return recs
