from __future__ import annotations

from datetime import date
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

from ..core.errors import InsufficientStockError, NotFoundError
from ..core.jinja import get_templates
from ..crud.inventory import create_item, delete_item, get_item, list_categories, list_items, update_item
from ..crud.pricing import item_price_quote, set_pricing_rule
from ..crud.projects import (
    create_project,
    delete_project,
    get_project,
    list_active_projects,
    list_projects,
    project_detail,
    set_status,
    status_counts,
)
from ..crud.reconciliations import (
    create_reconciliation,
    delete_reconciliation,
    get_reconciliation,
    list_reconciliations,
    reconciliation_worksheet,
)
from ..crud.tools import (
    create_tool,
    delete_tool,
    get_tool,
    list_tool_types,
    list_tools,
    location_options,
    move_tool,
    recent_movements,
    set_maintenance,
    tool_history,
)
from ..crud.transactions import checkout_items, list_batches, receive_items, void_batch
from ..db.session import get_db
from ..deps.auth import current_principal
from ..deps.ui_auth import require_ui_session
from ..models.tool import TOOL_STATUSES
from ..services.exports import reorder_filename, reorder_sheet_csv
from ..services.reorder import build_reorder_sheet
from ..services.reporting import build_report, dashboard_stats, resolve_range
from ..services.timecalc import parse_day
from .api_reports import csv_download

templates = get_templates()

router = APIRouter(dependencies=[Depends(require_ui_session)])


def _redirect(url: str, notice: str | None = None) -> RedirectResponse:
    if notice:
        url = f"{url}{'&' if '?' in url else '?'}notice={quote(notice)}"
    return RedirectResponse(url=url, status_code=303)


def _render(request: Request, name: str, context: dict, status_code: int = 200):
    context.setdefault("notice", request.query_params.get("notice"))
    context.setdefault("error", None)
    return templates.TemplateResponse(request, name, context, status_code=status_code)


def _lines(item_ids: List[str], quantities: List[str], costs: List[str] | None = None) -> list[dict]:
    """Pair up the repeated cart fields of a form, skipping rows left blank."""

    lines = []
    for index, item_id in enumerate(item_ids):
        quantity = quantities[index] if index < len(quantities) else ""
        if not str(item_id).strip() or not str(quantity).strip():
            continue
        line = {"inventory_item_id": item_id, "quantity": quantity}
        if costs is not None and index < len(costs):
            line["unit_cost"] = costs[index]
        lines.append(line)
    return lines


def _overrides(item_ids: List[int], orders: List[str]) -> dict[int, str]:
    return {item_id: value for item_id, value in zip(item_ids, orders) if str(value).strip()}


@router.get("/", response_class=HTMLResponse)
def dashboard_page(request: Request, db: Session = Depends(get_db)):
    context = {
        "stats": dashboard_stats(db),
        "low_stock": list_items(db, low_stock_only=True, limit=10),
        "recent_batches": list_batches(db, limit=8),
        "recent_moves": recent_movements(db, limit=8),
    }
    return _render(request, "dashboard.html", context)


@router.get("/inventory", response_class=HTMLResponse)
def inventory_page(
    request: Request,
    search: str = "",
    category: str = "",
    low_stock: bool = False,
    db: Session = Depends(get_db),
):
    context = {
        "items": list_items(db, search=search, category=category or None, low_stock_only=low_stock),
        "categories": list_categories(db),
        "search": search,
        "category": category,
        "low_stock": low_stock,
    }
    return _render(request, "inventory.html", context)


@router.get("/inventory/add", response_class=HTMLResponse)
def item_add_page(request: Request):
    return _render(request, "item_form.html", {"item": None, "form": {}, "quote": None})


@router.post("/inventory/add", response_class=HTMLResponse)
def item_add_submit(
    request: Request,
    name: str = Form(""),
    sku: str = Form(""),
    description: str = Form(""),
    unit_cost: str = Form(""),
    current_stock: str = Form(""),
    minimum_stock: str = Form(""),
    unit: str = Form(""),
    supplier: str = Form(""),
    category: str = Form(""),
    db: Session = Depends(get_db),
):
    form = {
        "name": name,
        "sku": sku,
        "description": description,
        "unit_cost": unit_cost,
        "current_stock": current_stock,
        "minimum_stock": minimum_stock,
        "unit": unit,
        "supplier": supplier,
        "category": category,
    }
    try:
        item = create_item(db, form)
    except ValueError as exc:
        return _render(request, "item_form.html", {"item": None, "form": form, "quote": None, "error": str(exc)}, 422)
    return _redirect("/inventory", f"Added {item.name}")


@router.get("/inventory/{item_id}/edit", response_class=HTMLResponse)
def item_edit_page(item_id: int, request: Request, db: Session = Depends(get_db)):
    item = get_item(db, item_id)
    if not item:
        raise HTTPException(404, "Not found")
    return _render(request, "item_form.html", {"item": item, "form": {}, "quote": item_price_quote(db, item)})


@router.post("/inventory/{item_id}/edit", response_class=HTMLResponse)
def item_edit_submit(
    item_id: int,
    request: Request,
    name: str = Form(""),
    sku: str = Form(""),
    description: str = Form(""),
    unit_cost: str = Form(""),
    minimum_stock: str = Form(""),
    unit: str = Form(""),
    supplier: str = Form(""),
    category: str = Form(""),
    db: Session = Depends(get_db),
):
    item = get_item(db, item_id)
    if not item:
        raise HTTPException(404, "Not found")
    form = {
        "name": name,
        "sku": sku,
        "description": description,
        "unit_cost": unit_cost,
        "minimum_stock": minimum_stock,
        "unit": unit,
        "supplier": supplier,
        "category": category,
    }
    try:
        update_item(db, item, form)
    except ValueError as exc:
        db.rollback()
        context = {"item": item, "form": form, "quote": item_price_quote(db, item), "error": str(exc)}
        return _render(request, "item_form.html", context, 422)
    return _redirect("/inventory", f"Saved {item.name}")


@router.post("/inventory/{item_id}/pricing", response_class=HTMLResponse)
def item_pricing_submit(
    item_id: int,
    markup_percentage: str = Form(""),
    minimum_price: str = Form(""),
    maximum_price: str = Form(""),
    db: Session = Depends(get_db),
):
    item = get_item(db, item_id)
    if not item:
        raise HTTPException(404, "Not found")
    payload = {"markup_percentage": markup_percentage, "minimum_price": minimum_price, "maximum_price": maximum_price}
    try:
        set_pricing_rule(db, item, payload)
    except ValueError as exc:
        return _redirect(f"/inventory/{item.id}/edit", f"Pricing not saved: {exc}")
    return _redirect(f"/inventory/{item.id}/edit", "Pricing saved")


@router.post("/inventory/{item_id}/delete", response_class=HTMLResponse)
def item_delete(item_id: int, db: Session = Depends(get_db)):
    item = get_item(db, item_id)
    if not item:
        raise HTTPException(404, "Not found")
    name = item.name
    delete_item(db, item)
    return _redirect("/inventory", f"Deleted {name}")


def _cart_context(db: Session) -> dict:
    return {"items": list_items(db), "projects": list_active_projects(db)}


@router.get("/inventory/receive", response_class=HTMLResponse)
def receive_page(request: Request, db: Session = Depends(get_db)):
    context = _cart_context(db)
    context["batches"] = list_batches(db, transaction_type="restock", limit=20)
    return _render(request, "receive.html", context)


@router.post("/inventory/receive", response_class=HTMLResponse)
def receive_submit(
    request: Request,
    item_id: List[str] = Form([]),
    quantity: List[str] = Form([]),
    unit_cost: List[str] = Form([]),
    notes: str = Form(""),
    db: Session = Depends(get_db),
):
    try:
        rows = receive_items(
            db, _lines(item_id, quantity, unit_cost), notes=notes, created_by=current_principal(request)
        )
    except ValueError as exc:
        context = _cart_context(db)
        context.update(batches=list_batches(db, transaction_type="restock", limit=20), error=str(exc))
        return _render(request, "receive.html", context, 404 if isinstance(exc, NotFoundError) else 422)
    return _redirect("/inventory/receive", f"Received {len(rows)} line(s)")


@router.get("/inventory/checkout", response_class=HTMLResponse)
def checkout_page(request: Request, project_id: Optional[int] = None, db: Session = Depends(get_db)):
    context = _cart_context(db)
    context.update(batches=list_batches(db, transaction_type="checkout", limit=20), selected_project=project_id)
    return _render(request, "checkout.html", context)


@router.post("/inventory/checkout", response_class=HTMLResponse)
def checkout_submit(
    request: Request,
    project_id: str = Form(""),
    item_id: List[str] = Form([]),
    quantity: List[str] = Form([]),
    notes: str = Form(""),
    db: Session = Depends(get_db),
):
    selected = int(project_id) if project_id.strip().isdigit() else None
    try:
        rows = checkout_items(
            db, selected, _lines(item_id, quantity), notes=notes, created_by=current_principal(request)
        )
    except ValueError as exc:
        status_code = 409 if isinstance(exc, InsufficientStockError) else 422
        context = _cart_context(db)
        context.update(
            batches=list_batches(db, transaction_type="checkout", limit=20),
            selected_project=selected,
            error=str(exc),
        )
        return _render(request, "checkout.html", context, status_code)
    return _redirect("/inventory/checkout", f"Checked out {len(rows)} line(s)")


@router.post("/inventory/batches/{batch_id}/void", response_class=HTMLResponse)
def batch_void(batch_id: str, next: str = Form("/inventory"), db: Session = Depends(get_db)):
    target = next if next.startswith("/") and not next.startswith("//") else "/inventory"
    try:
        removed = void_batch(db, batch_id)
    except NotFoundError:
        return _redirect(target, "That submission no longer exists")
    return _redirect(target, f"Voided {removed} line(s)")


@router.get("/inventory/reorder", response_class=HTMLResponse)
def reorder_page(request: Request, db: Session = Depends(get_db)):
    return _render(request, "reorder.html", {"sheet": build_reorder_sheet(db)})


@router.get("/inventory/reorder/print", response_class=HTMLResponse)
def reorder_print_page(
    request: Request,
    item_id: List[int] = Query([]),
    order: List[str] = Query([]),
    db: Session = Depends(get_db),
):
    sheet = build_reorder_sheet(db, _overrides(item_id, order))
    return _render(request, "reorder_print.html", {"sheet": sheet, "today": date.today()})


@router.get("/inventory/reorder/export")
def reorder_export(
    item_id: List[int] = Query([]),
    order: List[str] = Query([]),
    db: Session = Depends(get_db),
):
    sheet = build_reorder_sheet(db, _overrides(item_id, order))
    return csv_download(reorder_sheet_csv(sheet), reorder_filename())


@router.get("/inventory/reconcile", response_class=HTMLResponse)
def reconcile_page(request: Request, db: Session = Depends(get_db)):
    context = {"worksheet": reconciliation_worksheet(db), "history": list_reconciliations(db, limit=25)}
    return _render(request, "reconcile.html", context)


@router.post("/inventory/reconcile", response_class=HTMLResponse)
def reconcile_submit(
    request: Request,
    item_id: List[str] = Form([]),
    actual: List[str] = Form([]),
    notes: str = Form(""),
    db: Session = Depends(get_db),
):
    counts = {item: value for item, value in zip(item_id, actual) if str(value).strip()}
    try:
        rec = create_reconciliation(db, counts, reconciled_by=current_principal(request), notes=notes)
    except ValueError as exc:
        context = {
            "worksheet": reconciliation_worksheet(db),
            "history": list_reconciliations(db, limit=25),
            "error": str(exc),
        }
        return _render(request, "reconcile.html", context, 422)
    return _redirect("/inventory/reconcile", f"Recorded count of {len(rec.items)} item(s)")


@router.post("/inventory/reconcile/{reconciliation_id}/delete", response_class=HTMLResponse)
def reconcile_delete(reconciliation_id: int, db: Session = Depends(get_db)):
    rec = get_reconciliation(db, reconciliation_id)
    if not rec:
        return _redirect("/inventory/reconcile", "That count no longer exists")
    delete_reconciliation(db, rec)
    return _redirect("/inventory/reconcile", "Count deleted")


@router.get("/reports", response_class=HTMLResponse)
def reports_page(request: Request, start: str = "", end: str = "", db: Session = Depends(get_db)):
    error = None
    try:
        start_day, end_day = resolve_range(parse_day(start), parse_day(end))
    except ValueError as exc:
        error = str(exc)
        start_day, end_day = resolve_range()
    report = build_report(db, start_day, end_day)
    return _render(request, "reports.html", {"report": report, "error": error})


@router.get("/tools", response_class=HTMLResponse)
def tools_page(
    request: Request,
    search: str = "",
    location: str = "all",
    status: str = "all",
    type: str = "all",
    db: Session = Depends(get_db),
):
    context = {
        "tools": list_tools(db, search=search, location=location, status=status, tool_type=type),
        "locations": location_options(db),
        "types": list_tool_types(db),
        "statuses": TOOL_STATUSES,
        "filters": {"search": search, "location": location, "status": status, "type": type},
    }
    return _render(request, "tools.html", context)


@router.post("/tools", response_class=HTMLResponse)
def tool_add(
    name: str = Form(""),
    sku: str = Form(""),
    description: str = Form(""),
    type: str = Form(""),
    location: str = Form(""),
    db: Session = Depends(get_db),
):
    payload = {"name": name, "sku": sku, "description": description, "type": type, "location": location}
    try:
        tool = create_tool(db, payload)
    except ValueError as exc:
        return _redirect("/tools", f"Tool not added: {exc}")
    return _redirect("/tools", f"Added {tool.name}")


@router.get("/tools/{tool_id}", response_class=HTMLResponse)
def tool_detail_page(tool_id: int, request: Request, db: Session = Depends(get_db)):
    tool = get_tool(db, tool_id)
    if not tool:
        raise HTTPException(404, "Not found")
    context = {"tool": tool, "history": tool_history(db, tool), "locations": location_options(db)}
    return _render(request, "tool_detail.html", context)


@router.post("/tools/{tool_id}/move", response_class=HTMLResponse)
def tool_move(
    tool_id: int,
    request: Request,
    to_location: str = Form(""),
    notes: str = Form(""),
    next: str = Form("/tools"),
    db: Session = Depends(get_db),
):
    tool = get_tool(db, tool_id)
    if not tool:
        raise HTTPException(404, "Not found")
    target = next if next.startswith("/") and not next.startswith("//") else "/tools"
    try:
        move_tool(db, tool, to_location, moved_by=current_principal(request), notes=notes)
    except ValueError as exc:
        return _redirect(target, f"Move failed: {exc}")
    return _redirect(target, f"Moved {tool.name} to {tool.location}")


@router.post("/tools/{tool_id}/maintenance", response_class=HTMLResponse)
def tool_maintenance(tool_id: int, flag: str = Form("on"), db: Session = Depends(get_db)):
    tool = get_tool(db, tool_id)
    if not tool:
        raise HTTPException(404, "Not found")
    set_maintenance(db, tool, flag == "on")
    return _redirect(f"/tools/{tool.id}")


@router.post("/tools/{tool_id}/delete", response_class=HTMLResponse)
def tool_delete(tool_id: int, db: Session = Depends(get_db)):
    tool = get_tool(db, tool_id)
    if not tool:
        raise HTTPException(404, "Not found")
    name = tool.name
    delete_tool(db, tool)
    return _redirect("/tools", f"Deleted {name}")


@router.get("/projects", response_class=HTMLResponse)
def projects_page(request: Request, status: str = "active", db: Session = Depends(get_db)):
    try:
        projects = list_projects(db, status=status)
    except ValueError:
        status = "all"
        projects = list_projects(db)
    context = {"projects": projects, "counts": status_counts(db), "status": status}
    return _render(request, "projects.html", context)


@router.post("/projects", response_class=HTMLResponse)
def project_add(
    name: str = Form(""),
    description: str = Form(""),
    start_date: str = Form(""),
    end_date: str = Form(""),
    db: Session = Depends(get_db),
):
    payload = {"name": name, "description": description, "start_date": start_date, "end_date": end_date}
    try:
        project = create_project(db, payload)
    except ValueError as exc:
        return _redirect("/projects", f"Project not added: {exc}")
    return _redirect(f"/projects/{project.id}", "Project created")


@router.get("/projects/{project_id}", response_class=HTMLResponse)
def project_detail_page(project_id: int, request: Request, db: Session = Depends(get_db)):
    project = get_project(db, project_id)
    if not project:
        raise HTTPException(404, "Not found")
    context = project_detail(db, project)
    context["locations"] = location_options(db)
    return _render(request, "project_detail.html", context)


@router.post("/projects/{project_id}/status", response_class=HTMLResponse)
def project_status(project_id: int, status: str = Form(...), db: Session = Depends(get_db)):
    project = get_project(db, project_id)
    if not project:
        raise HTTPException(404, "Not found")
    try:
        set_status(db, project, status)
    except ValueError as exc:
        return _redirect(f"/projects/{project.id}", f"Status not changed: {exc}")
    return _redirect(f"/projects/{project.id}", f"Project marked {project.status}")


@router.post("/projects/{project_id}/delete", response_class=HTMLResponse)
def project_delete(project_id: int, db: Session = Depends(get_db)):
    project = get_project(db, project_id)
    if not project:
        raise HTTPException(404, "Not found")
    delete_project(db, project)
    return _redirect("/projects", "Project deleted")
