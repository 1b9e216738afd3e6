from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError
from ..crud.tools import (
    create_tool,
    delete_tool,
    get_tool,
    list_tool_types,
    list_tools,
    location_options,
    move_tool,
    set_maintenance,
    tool_history,
    update_tool,
)
from ..db.session import get_db
from ..deps.auth import current_principal, require_ui_or_token
from ..schemas.tool import MaintenanceRequest, MoveRequest, MovementOut, ToolCreate, ToolOut, ToolUpdate

router = APIRouter(prefix="/api/v1/tools", tags=["tools"], dependencies=[Depends(require_ui_or_token)])


def _tool_or_404(db: Session, tool_id: int):
    tool = get_tool(db, tool_id)
    if not tool:
        raise NotFoundError("Tool", tool_id)
    return tool


@router.get("", response_model=list[ToolOut])
def api_list_tools(
    search: Optional[str] = None,
    location: Optional[str] = None,
    status: Optional[str] = None,
    type: Optional[str] = None,
    db: Session = Depends(get_db),
):
    try:
        return list_tools(db, search=search, location=location, status=status, tool_type=type)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/locations", response_model=list[str])
def api_locations(db: Session = Depends(get_db)):
    return location_options(db)


@router.get("/types", response_model=list[str])
def api_tool_types(db: Session = Depends(get_db)):
    return list_tool_types(db)


@router.post("", response_model=ToolOut, status_code=201)
def api_create_tool(payload: ToolCreate, db: Session = Depends(get_db)):
    try:
        return create_tool(db, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/{tool_id}", response_model=ToolOut)
def api_get_tool(tool_id: int, db: Session = Depends(get_db)):
    return _tool_or_404(db, tool_id)


@router.patch("/{tool_id}", response_model=ToolOut)
def api_update_tool(tool_id: int, payload: ToolUpdate, db: Session = Depends(get_db)):
    tool = _tool_or_404(db, tool_id)
    try:
        return update_tool(db, tool, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/{tool_id}")
def api_delete_tool(tool_id: int, db: Session = Depends(get_db)):
    delete_tool(db, _tool_or_404(db, tool_id))
    return {"status": "deleted"}


@router.post("/{tool_id}/move", response_model=MovementOut, status_code=201)
def api_move_tool(tool_id: int, payload: MoveRequest, request: Request, db: Session = Depends(get_db)):
    tool = _tool_or_404(db, tool_id)
    try:
        return move_tool(
            db,
            tool,
            payload.to_location,
            moved_by=payload.moved_by or current_principal(request),
            notes=payload.notes,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.post("/{tool_id}/maintenance", response_model=ToolOut)
def api_set_maintenance(tool_id: int, payload: MaintenanceRequest, db: Session = Depends(get_db)):
    return set_maintenance(db, _tool_or_404(db, tool_id), payload.maintenance)


@router.get("/{tool_id}/history", response_model=list[MovementOut])
def api_tool_history(tool_id: int, db: Session = Depends(get_db)):
    return tool_history(db, _tool_or_404(db, tool_id))
