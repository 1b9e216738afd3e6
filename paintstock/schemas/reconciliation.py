from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ReconciliationRequest(BaseModel):
    # item id -> counted quantity
    counts: dict[int, int] = Field(min_length=1)
    notes: Optional[str] = None
    reconciled_by: Optional[str] = None


class ReconciliationLineOut(BaseModel):
    id: int
    inventory_item_id: int
    item_name: Optional[str] = None
    recorded_quantity: int
    actual_quantity: int
    difference: int

    class Config:
        from_attributes = True


class ReconciliationOut(BaseModel):
    id: int
    reconciled_by: str
    notes: Optional[str]
    created_at: str
    updated_at: Optional[str] = None
    summary: Optional[str] = None
    items: list[ReconciliationLineOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class WorksheetRow(BaseModel):
    inventory_item_id: int
    name: str
    sku: str
    unit: Optional[str] = None
    current_stock: int
    derived_quantity: int
    drift: int
