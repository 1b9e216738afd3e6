from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..core.errors import HANDLED_ERRORS, NotFoundError
from ..crud.inventory import (
    create_item,
    delete_item,
    get_item,
    get_item_by_sku,
    list_categories,
    list_items,
    update_item,
)
from ..crud.pricing import delete_pricing_rule, get_pricing_rule, item_price_quote, list_pricing_rules, set_pricing_rule
from ..crud.transactions import checkout_items, list_batches, list_transactions, receive_items, void_batch
from ..db.session import get_db
from ..deps.auth import current_principal, require_ui_or_token
from ..schemas.inventory import (
    BatchSummary,
    CheckoutRequest,
    ItemCreate,
    ItemOut,
    ItemUpdate,
    ReceiveRequest,
    SubmissionOut,
    TransactionOut,
)
from ..schemas.pricing import PriceQuote, PricingRuleIn, PricingRuleOut

router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"], dependencies=[Depends(require_ui_or_token)])


def _item_or_404(db: Session, item_id: int):
    item = get_item(db, item_id)
    if not item:
        raise NotFoundError("Inventory item", item_id)
    return item


def _submission(rows) -> SubmissionOut:
    return SubmissionOut(
        batch_id=rows[0].batch_id,
        transaction_type=rows[0].transaction_type,
        line_count=len(rows),
        total_quantity=sum(row.quantity for row in rows),
        total_cost=round(sum(row.total_cost for row in rows), 2),
        transactions=[TransactionOut.model_validate(row, from_attributes=True) for row in rows],
    )


@router.get("/items", response_model=list[ItemOut])
def api_list_items(
    search: Optional[str] = None,
    category: Optional[str] = None,
    low_stock: bool = False,
    limit: Optional[int] = None,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    return list_items(db, search=search, category=category, low_stock_only=low_stock, limit=limit, offset=offset)


@router.get("/categories", response_model=list[str])
def api_list_categories(db: Session = Depends(get_db)):
    return list_categories(db)


@router.get("/items/by-sku/{sku}", response_model=ItemOut)
def api_item_by_sku(sku: str, db: Session = Depends(get_db)):
    item = get_item_by_sku(db, sku)
    if not item:
        raise NotFoundError("Inventory item", sku)
    return item


@router.get("/items/{item_id}", response_model=ItemOut)
def api_get_item(item_id: int, db: Session = Depends(get_db)):
    return _item_or_404(db, item_id)


@router.post("/items", response_model=ItemOut, status_code=201)
def api_create_item(payload: ItemCreate, db: Session = Depends(get_db)):
    try:
        return create_item(db, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.patch("/items/{item_id}", response_model=ItemOut)
def api_update_item(item_id: int, payload: ItemUpdate, db: Session = Depends(get_db)):
    item = _item_or_404(db, item_id)
    try:
        return update_item(db, item, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/items/{item_id}")
def api_delete_item(item_id: int, db: Session = Depends(get_db)):
    delete_item(db, _item_or_404(db, item_id))
    return {"status": "deleted"}


@router.get("/items/{item_id}/price", response_model=PriceQuote)
def api_item_price(item_id: int, db: Session = Depends(get_db)):
    return item_price_quote(db, _item_or_404(db, item_id))


@router.put("/items/{item_id}/pricing-rule", response_model=PricingRuleOut)
def api_set_pricing_rule(item_id: int, payload: PricingRuleIn, db: Session = Depends(get_db)):
    item = _item_or_404(db, item_id)
    try:
        return set_pricing_rule(db, item, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/items/{item_id}/pricing-rule")
def api_delete_pricing_rule(item_id: int, db: Session = Depends(get_db)):
    item = _item_or_404(db, item_id)
    rule = get_pricing_rule(db, item.id)
    if not rule:
        raise NotFoundError("Pricing rule", item.id)
    delete_pricing_rule(db, rule)
    return {"status": "deleted"}


@router.get("/pricing-rules", response_model=list[PricingRuleOut])
def api_list_pricing_rules(db: Session = Depends(get_db)):
    return list_pricing_rules(db)


@router.post("/receive", response_model=SubmissionOut, status_code=201)
def api_receive(payload: ReceiveRequest, request: Request, db: Session = Depends(get_db)):
    try:
        rows = receive_items(
            db,
            [line.model_dump() for line in payload.lines],
            notes=payload.notes,
            created_by=payload.created_by or current_principal(request),
        )
    except HANDLED_ERRORS:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _submission(rows)


@router.post("/checkout", response_model=SubmissionOut, status_code=201)
def api_checkout(payload: CheckoutRequest, request: Request, db: Session = Depends(get_db)):
    try:
        rows = checkout_items(
            db,
            payload.project_id,
            [line.model_dump() for line in payload.lines],
            notes=payload.notes,
            created_by=payload.created_by or current_principal(request),
        )
    except HANDLED_ERRORS:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _submission(rows)


@router.get("/transactions", response_model=list[TransactionOut])
def api_list_transactions(
    transaction_type: Optional[str] = None,
    project_id: Optional[int] = None,
    item_id: Optional[int] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    limit: int = 200,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    try:
        return list_transactions(
            db,
            transaction_type=transaction_type,
            project_id=project_id,
            item_id=item_id,
            start=start,
            end=end,
            limit=limit,
            offset=offset,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/batches", response_model=list[BatchSummary])
def api_list_batches(transaction_type: Optional[str] = None, limit: int = 50, db: Session = Depends(get_db)):
    try:
        return list_batches(db, transaction_type=transaction_type, limit=limit)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/batches/{batch_id}")
def api_void_batch(batch_id: str, db: Session = Depends(get_db)):
    removed = void_batch(db, batch_id)
    return {"status": "voided", "removed": removed}
