"""CRUD helpers for projects (job sites) and the costs charged to them."""

from __future__ import annotations

from sqlalchemy import desc, func, select, update
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.project import PROJECT_STATUSES, Project
from ..models.tool import Tool, ToolMovement
from ..models.transaction import CHECKOUT, InventoryTransaction
from ..services.timecalc import parse_day, utcnow_iso


def _clean_status(value: str | None) -> str:
    status = (value or "active").strip().lower()
    if status not in PROJECT_STATUSES:
        raise ValueError(f"status must be one of {', '.join(PROJECT_STATUSES)}")
    return status


def _clean_day(value) -> str | None:
    day = parse_day(value)
    return day.isoformat() if day else None


def _check_dates(start: str | None, end: str | None) -> None:
    if start and end and end < start:
        raise ValueError("end_date is before start_date")


def _clean_name(db: Session, value, exclude_id: int | None = None) -> str:
    name = (value or "").strip()
    if not name:
        raise ValueError("name is required")
    # Project names double as tool locations.
    if name.lower() == settings.SHOP_LOCATION.lower():
        raise ValueError(f"name {name} is reserved for the shop")
    stmt = select(Project.id).where(Project.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Project.id != exclude_id)
    if db.execute(stmt).first():
        raise ValueError(f"project name {name} is already in use")
    return name


def _expense_totals(db: Session, project_ids: list[int]) -> dict[int, float]:
    if not project_ids:
        return {}
    stmt = (
        select(InventoryTransaction.project_id, func.coalesce(func.sum(InventoryTransaction.total_cost), 0.0))
        .where(
            InventoryTransaction.transaction_type == CHECKOUT,
            InventoryTransaction.project_id.in_(project_ids),
        )
        .group_by(InventoryTransaction.project_id)
    )
    return {project_id: round(float(total), 2) for project_id, total in db.execute(stmt).all()}


def list_projects(db: Session, status: str | None = None, limit: int = 200, offset: int = 0) -> list[Project]:
    """Projects newest first. Each row carries a ``total_expenses`` attribute."""

    stmt = select(Project)
    if status and status != "all":
        stmt = stmt.where(Project.status == _clean_status(status))
    stmt = stmt.order_by(desc(Project.created_at), desc(Project.id)).limit(limit).offset(offset)
    projects = db.execute(stmt).scalars().all()
    totals = _expense_totals(db, [p.id for p in projects])
    for project in projects:
        project.total_expenses = totals.get(project.id, 0.0)
    return projects


def list_active_projects(db: Session) -> list[Project]:
    stmt = select(Project).where(Project.status == "active").order_by(Project.name)
    return db.execute(stmt).scalars().all()


def get_project(db: Session, project_id: int) -> Project | None:
    project = db.get(Project, project_id)
    if project is not None:
        project.total_expenses = _expense_totals(db, [project.id]).get(project.id, 0.0)
    return project


def get_project_by_name(db: Session, name: str | None) -> Project | None:
    if not name:
        return None
    return db.execute(select(Project).where(Project.name == name.strip())).scalars().first()


def create_project(db: Session, payload: dict) -> Project:
    name = _clean_name(db, payload.get("name"))
    start_date = _clean_day(payload.get("start_date"))
    end_date = _clean_day(payload.get("end_date"))
    _check_dates(start_date, end_date)
    now = utcnow_iso()
    project = Project(
        name=name,
        description=(payload.get("description") or "").strip() or None,
        status=_clean_status(payload.get("status")),
        start_date=start_date,
        end_date=end_date,
        created_at=now,
        updated_at=now,
    )
    db.add(project)
    db.commit()
    db.refresh(project)
    project.total_expenses = 0.0
    return project


def update_project(db: Session, project: Project, payload: dict) -> Project:
    old_name = project.name
    if "name" in payload:
        project.name = _clean_name(db, payload.get("name"), exclude_id=project.id)
    if "description" in payload:
        project.description = (payload.get("description") or "").strip() or None
    if "status" in payload:
        project.status = _clean_status(payload.get("status"))
    for field in ("start_date", "end_date"):
        if field in payload:
            setattr(project, field, _clean_day(payload.get(field)))
    _check_dates(project.start_date, project.end_date)
    # Tools sitting on the job follow the rename.
    if project.name != old_name:
        db.execute(update(Tool).where(Tool.location == old_name).values(location=project.name))
    project.updated_at = utcnow_iso()
    db.commit()
    db.refresh(project)
    project.total_expenses = _expense_totals(db, [project.id]).get(project.id, 0.0)
    return project


def set_status(db: Session, project: Project, status: str) -> Project:
    return update_project(db, project, {"status": status})


def delete_project(db: Session, project: Project) -> None:
    """Delete a project; its expense and movement history is kept unlinked."""

    db.execute(
        update(InventoryTransaction).where(InventoryTransaction.project_id == project.id).values(project_id=None)
    )
    db.execute(update(ToolMovement).where(ToolMovement.project_id == project.id).values(project_id=None))
    db.delete(project)
    db.commit()


def status_counts(db: Session) -> dict[str, int]:
    counts = {status: 0 for status in PROJECT_STATUSES}
    stmt = select(Project.status, func.count()).group_by(Project.status)
    for status, count in db.execute(stmt).all():
        counts[status] = count
    counts["all"] = sum(counts.values())
    return counts


def project_detail(db: Session, project: Project) -> dict:
    """Everything the project page shows: tools on site, their moves, and material spent."""

    tools = db.execute(select(Tool).where(Tool.location == project.name).order_by(Tool.name)).scalars().all()
    movements = db.execute(
        select(ToolMovement)
        .where(
            (ToolMovement.project_id == project.id)
            | (ToolMovement.to_location == project.name)
            | (ToolMovement.from_location == project.name)
        )
        .order_by(desc(ToolMovement.moved_at), desc(ToolMovement.id))
    ).unique().scalars().all()
    expenses = db.execute(
        select(InventoryTransaction)
        .where(
            InventoryTransaction.project_id == project.id,
            InventoryTransaction.transaction_type == CHECKOUT,
        )
        .order_by(desc(InventoryTransaction.created_at), desc(InventoryTransaction.id))
    ).unique().scalars().all()
    total = round(sum(row.total_cost or 0.0 for row in expenses), 2)
    project.total_expenses = total
    return {
        "project": project,
        "tools": tools,
        "movements": movements,
        "expenses": expenses,
        "total_expenses": total,
    }
