from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ItemBase(BaseModel):
    name: str
    sku: str
    description: Optional[str] = None
    unit_cost: float = Field(default=0.0, ge=0)
    current_stock: int = Field(default=0, ge=0)
    minimum_stock: int = Field(default=0, ge=0)
    unit: Optional[str] = None
    supplier: Optional[str] = None
    category: Optional[str] = None


class ItemCreate(ItemBase):
    pass


class ItemUpdate(BaseModel):
    name: Optional[str] = None
    sku: Optional[str] = None
    description: Optional[str] = None
    unit_cost: Optional[float] = Field(default=None, ge=0)
    current_stock: Optional[int] = Field(default=None, ge=0)
    minimum_stock: Optional[int] = Field(default=None, ge=0)
    unit: Optional[str] = None
    supplier: Optional[str] = None
    category: Optional[str] = None


class ItemOut(ItemBase):
    id: int
    unit: str
    is_low_stock: bool
    stock_value: float
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class CartLine(BaseModel):
    inventory_item_id: int
    quantity: int = Field(gt=0)


class ReceiveLine(CartLine):
    unit_cost: Optional[float] = Field(default=None, ge=0)


class ReceiveRequest(BaseModel):
    lines: list[ReceiveLine] = Field(min_length=1)
    notes: Optional[str] = None
    created_by: Optional[str] = None


class CheckoutRequest(BaseModel):
    project_id: int
    lines: list[CartLine] = Field(min_length=1)
    notes: Optional[str] = None
    created_by: Optional[str] = None


class TransactionOut(BaseModel):
    id: int
    inventory_item_id: int
    project_id: Optional[int]
    quantity: int
    unit_cost: float
    total_cost: float
    transaction_type: str
    notes: Optional[str]
    created_by: str
    created_at: str
    batch_id: Optional[str]
    item_name: Optional[str] = None
    item_sku: Optional[str] = None
    project_name: Optional[str] = None

    class Config:
        from_attributes = True


class SubmissionOut(BaseModel):
    batch_id: str
    transaction_type: str
    line_count: int
    total_quantity: int
    total_cost: float
    transactions: list[TransactionOut]


class BatchSummary(BaseModel):
    batch_id: str
    transaction_type: str
    created_at: str
    created_by: str
    project_id: Optional[int] = None
    project_name: Optional[str] = None
    notes: Optional[str] = None
    line_count: int
    total_quantity: int
    total_cost: float
