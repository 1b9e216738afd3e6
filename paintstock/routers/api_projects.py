from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError
from ..crud.projects import (
    create_project,
    delete_project,
    get_project,
    list_projects,
    project_detail,
    set_status,
    status_counts,
    update_project,
)
from ..db.session import get_db
from ..deps.auth import require_ui_or_token
from ..schemas.project import ProjectCreate, ProjectDetail, ProjectOut, ProjectStatusUpdate, ProjectUpdate

router = APIRouter(prefix="/api/v1/projects", tags=["projects"], dependencies=[Depends(require_ui_or_token)])


def _project_or_404(db: Session, project_id: int):
    project = get_project(db, project_id)
    if not project:
        raise NotFoundError("Project", project_id)
    return project


@router.get("", response_model=list[ProjectOut])
def api_list_projects(status: Optional[str] = None, db: Session = Depends(get_db)):
    try:
        return list_projects(db, status=status)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/status-counts", response_model=dict[str, int])
def api_status_counts(db: Session = Depends(get_db)):
    return status_counts(db)


@router.post("", response_model=ProjectOut, status_code=201)
def api_create_project(payload: ProjectCreate, db: Session = Depends(get_db)):
    try:
        return create_project(db, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/{project_id}", response_model=ProjectDetail)
def api_get_project(project_id: int, db: Session = Depends(get_db)):
    return project_detail(db, _project_or_404(db, project_id))


@router.patch("/{project_id}", response_model=ProjectOut)
def api_update_project(project_id: int, payload: ProjectUpdate, db: Session = Depends(get_db)):
    project = _project_or_404(db, project_id)
    try:
        return update_project(db, project, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.post("/{project_id}/status", response_model=ProjectOut)
def api_set_project_status(project_id: int, payload: ProjectStatusUpdate, db: Session = Depends(get_db)):
    project = _project_or_404(db, project_id)
    try:
        return set_status(db, project, payload.status)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/{project_id}")
def api_delete_project(project_id: int, db: Session = Depends(get_db)):
    delete_project(db, _project_or_404(db, project_id))
    return {"status": "deleted"}
