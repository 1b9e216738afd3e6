from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ItemUsage(BaseModel):
    item_name: str
    item_sku: str
    total_quantity: int
    total_cost: float
    transaction_count: int


class ProjectExpense(BaseModel):
    project_id: int
    project_name: str
    total_cost: float
    item_count: int


class MonthlyUsage(BaseModel):
    month: str
    total_cost: float
    transaction_count: int


class PeriodSummary(BaseModel):
    start: str
    end: str
    received_cost: float
    checkout_cost: float
    net_cost: float
    units_received: int
    units_checked_out: int
    net_units: int
    distinct_items: int


class UsageReport(BaseModel):
    start: str
    end: str
    most_used_items: list[ItemUsage] = Field(default_factory=list)
    project_expenses: list[ProjectExpense] = Field(default_factory=list)
    monthly_usage: list[MonthlyUsage] = Field(default_factory=list)
    summary: PeriodSummary


class DashboardStats(BaseModel):
    total_items: int
    low_stock_items: int
    total_tools: int
    active_projects: int
    total_stock_value: float


class ReorderLine(BaseModel):
    inventory_item_id: int
    name: str
    sku: str
    current_stock: int
    minimum_stock: int
    suggested_order: int
    recommended_order: int
    unit: str
    unit_cost: float
    line_cost: float
    supplier: str
    category: Optional[str] = None


class SupplierGroup(BaseModel):
    supplier: str
    lines: list[ReorderLine]
    item_count: int
    subtotal: float


class ReorderSheet(BaseModel):
    lines: list[ReorderLine] = Field(default_factory=list)
    groups: list[SupplierGroup] = Field(default_factory=list)
    item_count: int
    total_units: int
    total_cost: float


class ReorderOverrides(BaseModel):
    # item id -> hand-edited order quantity
    overrides: dict[int, int] = Field(default_factory=dict)
