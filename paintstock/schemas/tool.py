from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class ToolBase(BaseModel):
    name: str
    sku: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None


class ToolCreate(ToolBase):
    location: Optional[str] = None
    status: Optional[str] = None


class ToolUpdate(BaseModel):
    name: Optional[str] = None
    sku: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None


class ToolOut(ToolBase):
    id: int
    location: str
    status: str
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class MoveRequest(BaseModel):
    to_location: str
    notes: Optional[str] = None
    moved_by: Optional[str] = None


class MaintenanceRequest(BaseModel):
    maintenance: bool = True


class MovementOut(BaseModel):
    id: int
    tool_id: int
    project_id: Optional[int]
    from_location: str
    to_location: str
    movement_type: str
    notes: Optional[str]
    moved_by: str
    moved_at: str
    tool_name: Optional[str] = None
    tool_sku: Optional[str] = None

    class Config:
        from_attributes = True
