from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class PricingRuleIn(BaseModel):
    markup_percentage: float = Field(ge=-100)
    minimum_price: Optional[float] = Field(default=None, ge=0)
    maximum_price: Optional[float] = Field(default=None, ge=0)


class PricingRuleOut(PricingRuleIn):
    id: int
    inventory_item_id: int

    class Config:
        from_attributes = True


class PriceQuote(BaseModel):
    inventory_item_id: int
    name: str
    sku: str
    unit_cost: float
    markup_percentage: Optional[float] = None
    minimum_price: Optional[float] = None
    maximum_price: Optional[float] = None
    retail_price: float
    effective_markup: Optional[float] = None
