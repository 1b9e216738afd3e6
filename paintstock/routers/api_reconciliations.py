from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..core.errors import HANDLED_ERRORS, NotFoundError
from ..crud.reconciliations import (
    create_reconciliation,
    delete_reconciliation,
    get_reconciliation,
    list_reconciliations,
    reconciliation_worksheet,
    summarize,
    update_reconciliation,
)
from ..db.session import get_db
from ..deps.auth import current_principal, require_ui_or_token
from ..schemas.reconciliation import ReconciliationOut, ReconciliationRequest, WorksheetRow

router = APIRouter(
    prefix="/api/v1/reconciliations",
    tags=["reconciliations"],
    dependencies=[Depends(require_ui_or_token)],
)


def _rec_or_404(db: Session, reconciliation_id: int):
    rec = get_reconciliation(db, reconciliation_id)
    if not rec:
        raise NotFoundError("Reconciliation", reconciliation_id)
    return rec


def _with_summary(rec):
    rec.summary = summarize(rec)
    return rec


@router.get("", response_model=list[ReconciliationOut])
def api_list_reconciliations(limit: int = 100, offset: int = 0, db: Session = Depends(get_db)):
    return list_reconciliations(db, limit=limit, offset=offset)


@router.get("/worksheet", response_model=list[WorksheetRow])
def api_worksheet(db: Session = Depends(get_db)):
    return reconciliation_worksheet(db)


@router.post("", response_model=ReconciliationOut, status_code=201)
def api_create_reconciliation(payload: ReconciliationRequest, request: Request, db: Session = Depends(get_db)):
    try:
        rec = create_reconciliation(
            db,
            payload.counts,
            reconciled_by=payload.reconciled_by or current_principal(request),
            notes=payload.notes,
        )
    except HANDLED_ERRORS:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _with_summary(rec)


@router.get("/{reconciliation_id}", response_model=ReconciliationOut)
def api_get_reconciliation(reconciliation_id: int, db: Session = Depends(get_db)):
    return _with_summary(_rec_or_404(db, reconciliation_id))


@router.put("/{reconciliation_id}", response_model=ReconciliationOut)
def api_update_reconciliation(
    reconciliation_id: int,
    payload: ReconciliationRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    rec = _rec_or_404(db, reconciliation_id)
    try:
        rec = update_reconciliation(
            db,
            rec,
            payload.counts,
            reconciled_by=payload.reconciled_by or current_principal(request),
            notes=payload.notes,
        )
    except HANDLED_ERRORS:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _with_summary(rec)


@router.delete("/{reconciliation_id}")
def api_delete_reconciliation(reconciliation_id: int, db: Session = Depends(get_db)):
    delete_reconciliation(db, _rec_or_404(db, reconciliation_id))
    return {"status": "deleted"}
