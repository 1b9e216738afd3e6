"""Pydantic schemas that describe project payloads for the API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .inventory import TransactionOut
from .tool import MovementOut, ToolOut


class ProjectBase(BaseModel):
    name: str
    description: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ProjectStatusUpdate(BaseModel):
    status: str


class ProjectOut(ProjectBase):
    id: int
    status: str
    created_at: str
    updated_at: str
    total_expenses: float = 0.0

    class Config:
        from_attributes = True


class ProjectDetail(BaseModel):
    project: ProjectOut
    tools: list[ToolOut] = Field(default_factory=list)
    movements: list[MovementOut] = Field(default_factory=list)
    expenses: list[TransactionOut] = Field(default_factory=list)
    total_expenses: float = 0.0
