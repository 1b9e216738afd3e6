from __future__ import annotations

import io
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..deps.auth import require_ui_or_token
from ..schemas.report import DashboardStats, ReorderOverrides, ReorderSheet, UsageReport
from ..services.exports import (
    render_reorder_pdf,
    reorder_filename,
    reorder_sheet_csv,
    report_csv,
    report_filename,
)
from ..services.reorder import build_reorder_sheet
from ..services.reporting import (
    build_report,
    dashboard_stats,
    monthly_usage,
    most_used_items,
    project_expenses,
    resolve_range,
)

router = APIRouter(prefix="/api/v1/reports", tags=["reports"], dependencies=[Depends(require_ui_or_token)])

_REPORT_ROWS = {
    "items": most_used_items,
    "projects": project_expenses,
    "monthly": monthly_usage,
}


def parse_overrides(raw: Optional[str]) -> dict[int, int]:
    """``"12:5,14:0"`` -> ``{12: 5, 14: 0}``."""

    overrides: dict[int, int] = {}
    for chunk in (raw or "").split(","):
        if not chunk.strip():
            continue
        item_id, sep, quantity = chunk.partition(":")
        if not sep:
            raise ValueError(f"invalid override {chunk!r}; expected item_id:quantity")
        try:
            overrides[int(item_id)] = max(0, int(quantity))
        except ValueError as exc:
            raise ValueError(f"invalid override {chunk!r}; expected item_id:quantity") from exc
    return overrides


def csv_download(content: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(content.encode("utf-8")),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _sheet(db: Session, overrides: Optional[str]):
    try:
        return build_reorder_sheet(db, parse_overrides(overrides))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/dashboard", response_model=DashboardStats)
def api_dashboard(db: Session = Depends(get_db)):
    return dashboard_stats(db)


@router.get("/reorder", response_model=ReorderSheet)
def api_reorder_sheet(overrides: Optional[str] = None, db: Session = Depends(get_db)):
    return _sheet(db, overrides)


@router.post("/reorder", response_model=ReorderSheet)
def api_reorder_sheet_with_overrides(payload: ReorderOverrides, db: Session = Depends(get_db)):
    try:
        return build_reorder_sheet(db, payload.overrides)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/reorder.csv")
def api_reorder_csv(overrides: Optional[str] = None, db: Session = Depends(get_db)):
    sheet = _sheet(db, overrides)
    return csv_download(reorder_sheet_csv(sheet), reorder_filename())


@router.get("/reorder.pdf")
def api_reorder_pdf(overrides: Optional[str] = None, db: Session = Depends(get_db)):
    sheet = _sheet(db, overrides)
    filename = reorder_filename().replace(".csv", ".pdf")
    return Response(
        content=render_reorder_pdf(sheet),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/usage", response_model=UsageReport)
def api_usage_report(start: Optional[date] = None, end: Optional[date] = None, db: Session = Depends(get_db)):
    try:
        return build_report(db, start, end)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/usage/{kind}.csv")
def api_usage_csv(kind: str, start: Optional[date] = None, end: Optional[date] = None, db: Session = Depends(get_db)):
    if kind not in _REPORT_ROWS:
        raise HTTPException(status_code=404, detail=f"Unknown report {kind}")
    try:
        start, end = resolve_range(start, end)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    rows = _REPORT_ROWS[kind](db, start, end)
    return csv_download(report_csv(kind, rows), report_filename(kind, start, end))
