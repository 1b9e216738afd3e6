"""CRUD helpers for tools and their movement log."""

from __future__ import annotations

import logging

from sqlalchemy import delete, desc, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.skus import normalize_sku
from ..db.session import atomic
from ..models.project import Project
from ..models.tool import TOOL_STATUSES, Tool, ToolMovement
from ..services.timecalc import utcnow_iso

logger = logging.getLogger(__name__)


def _ensure_unique_sku(db: Session, sku: str | None, exclude_id: int | None = None) -> None:
    if not sku:
        return
    stmt = select(Tool.id).where(Tool.sku == sku)
    if exclude_id is not None:
        stmt = stmt.where(Tool.id != exclude_id)
    if db.execute(stmt).first():
        raise ValueError(f"tool sku {sku} is already in use")


def _clean_status(value: str | None) -> str:
    status = (value or "available").strip().lower()
    if status not in TOOL_STATUSES:
        raise ValueError(f"status must be one of {', '.join(TOOL_STATUSES)}")
    return status


def _optional(value) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


def list_tools(
    db: Session,
    *,
    search: str | None = None,
    location: str | None = None,
    status: str | None = None,
    tool_type: str | None = None,
) -> list[Tool]:
    stmt = select(Tool)
    term = (search or "").strip().lower()
    if term:
        pattern = f"%{term}%"
        stmt = stmt.where(
            or_(
                func.lower(Tool.name).like(pattern),
                func.lower(func.coalesce(Tool.sku, "")).like(pattern),
                func.lower(func.coalesce(Tool.description, "")).like(pattern),
            )
        )
    if location and location != "all":
        stmt = stmt.where(Tool.location == location)
    if status and status != "all":
        stmt = stmt.where(Tool.status == _clean_status(status))
    if tool_type and tool_type != "all":
        stmt = stmt.where(Tool.type == tool_type)
    return db.execute(stmt.order_by(Tool.name, Tool.id)).scalars().all()


def get_tool(db: Session, tool_id: int) -> Tool | None:
    return db.get(Tool, tool_id)


def list_tool_types(db: Session) -> list[str]:
    stmt = select(Tool.type).where(Tool.type.is_not(None), Tool.type != "").distinct().order_by(Tool.type)
    return [row[0] for row in db.execute(stmt).all()]


def location_options(db: Session) -> list[str]:
    """Where a tool can be sent: the shop, then every project by name."""

    names = db.execute(select(Project.name).order_by(Project.name)).scalars().all()
    options = [settings.SHOP_LOCATION]
    for name in names:
        if name not in options:
            options.append(name)
    return options


def create_tool(db: Session, payload: dict) -> Tool:
    name = (payload.get("name") or "").strip()
    if not name:
        raise ValueError("name is required")
    sku = normalize_sku(payload.get("sku"))
    _ensure_unique_sku(db, sku)
    location = _optional(payload.get("location")) or settings.SHOP_LOCATION
    status = payload.get("status")
    if not status:
        status = "available" if location == settings.SHOP_LOCATION else "in_use"
    now = utcnow_iso()
    tool = Tool(
        name=name,
        sku=sku,
        description=_optional(payload.get("description")),
        type=_optional(payload.get("type")),
        location=location,
        status=_clean_status(status),
        created_at=now,
        updated_at=now,
    )
    db.add(tool)
    db.commit()
    db.refresh(tool)
    return tool


def update_tool(db: Session, tool: Tool, payload: dict) -> Tool:
    """Edit descriptive fields. Location changes go through :func:`move_tool`."""

    if "name" in payload:
        name = (payload.get("name") or "").strip()
        if not name:
            raise ValueError("name is required")
        tool.name = name
    if "sku" in payload:
        sku = normalize_sku(payload.get("sku"))
        if sku != tool.sku:
            _ensure_unique_sku(db, sku, exclude_id=tool.id)
        tool.sku = sku
    for field in ("description", "type"):
        if field in payload:
            setattr(tool, field, _optional(payload.get(field)))
    if "status" in payload and payload.get("status"):
        tool.status = _clean_status(payload.get("status"))
    tool.updated_at = utcnow_iso()
    db.commit()
    db.refresh(tool)
    return tool


def delete_tool(db: Session, tool: Tool) -> None:
    db.execute(delete(ToolMovement).where(ToolMovement.tool_id == tool.id))
    db.delete(tool)
    db.commit()


def movement_type_for(from_location: str, to_location: str) -> str:
    shop = settings.SHOP_LOCATION
    if to_location == shop:
        return "return"
    if from_location == shop:
        return "checkout"
    return "transfer"


def move_tool(
    db: Session,
    tool: Tool,
    to_location: str,
    *,
    moved_by: str,
    notes: str | None = None,
) -> ToolMovement:
    """Send a tool to the shop or a job site and log the move."""

    destination = (to_location or "").strip()
    if not destination:
        raise ValueError("to_location is required")
    if destination == tool.location:
        raise ValueError(f"{tool.name} is already at {destination}")
    project = None
    if destination != settings.SHOP_LOCATION:
        project = db.execute(select(Project).where(Project.name == destination)).scalars().first()
        if project is None:
            raise ValueError(f"unknown location: {destination}")

    origin = tool.location or settings.SHOP_LOCATION
    now = utcnow_iso()
    movement = ToolMovement(
        tool_id=tool.id,
        project_id=project.id if project else None,
        from_location=origin,
        to_location=destination,
        movement_type=movement_type_for(origin, destination),
        notes=_optional(notes),
        moved_by=moved_by,
        moved_at=now,
    )
    try:
        with atomic(db):
            tool.location = destination
            if tool.status != "maintenance":
                tool.status = "available" if destination == settings.SHOP_LOCATION else "in_use"
            tool.updated_at = now
            db.add(movement)
    except SQLAlchemyError:
        logger.exception("tools.move.failed", extra={"extra_data": {"tool_id": tool.id}})
        raise
    db.refresh(movement)
    logger.info(
        "tools.moved",
        extra={"extra_data": {"tool_id": tool.id, "from": origin, "to": destination, "type": movement.movement_type}},
    )
    return movement


def set_maintenance(db: Session, tool: Tool, flag: bool) -> Tool:
    """Flag a tool as out for repair, or put it back in service at its location."""

    if flag:
        tool.status = "maintenance"
    else:
        tool.status = "available" if tool.location == settings.SHOP_LOCATION else "in_use"
    tool.updated_at = utcnow_iso()
    db.commit()
    db.refresh(tool)
    return tool


def tool_history(db: Session, tool: Tool, limit: int = 100) -> list[ToolMovement]:
    stmt = (
        select(ToolMovement)
        .where(ToolMovement.tool_id == tool.id)
        .order_by(desc(ToolMovement.moved_at), desc(ToolMovement.id))
        .limit(limit)
    )
    return db.execute(stmt).unique().scalars().all()


def recent_movements(db: Session, limit: int = 20) -> list[ToolMovement]:
    stmt = select(ToolMovement).order_by(desc(ToolMovement.moved_at), desc(ToolMovement.id)).limit(limit)
    return db.execute(stmt).unique().scalars().all()


def count_tools(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(Tool)) or 0
