from __future__ import annotations

from sqlalchemy import Column, Float, ForeignKey, Integer
from sqlalchemy.orm import relationship

from ..db.session import Base


class PricingRule(Base):
    """Markup applied to an item's cost when quoting it to a customer."""

    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True, index=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False, unique=True, index=True)
    markup_percentage = Column(Float, nullable=False, default=0.0)
    minimum_price = Column(Float, nullable=True)
    maximum_price = Column(Float, nullable=True)

    item = relationship("InventoryItem", lazy="joined")


__all__ = ["PricingRule"]
