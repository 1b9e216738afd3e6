"""SQLAlchemy model for stocked materials (paint, primer, tape, sundries)."""

from __future__ import annotations

from sqlalchemy import Column, Float, Integer, Text

from ..db.session import Base


class InventoryItem(Base):
    """A stocked material.

    ``current_stock`` is the stored on-hand figure. It moves with every
    receive/checkout and is overwritten by reconciliation counts.
    """

    __tablename__ = "inventory_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, index=True)
    sku = Column(Text, nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    unit_cost = Column(Float, nullable=False, default=0.0)
    current_stock = Column(Integer, nullable=False, default=0)
    minimum_stock = Column(Integer, nullable=False, default=0)
    unit = Column(Text, nullable=False, default="each")
    supplier = Column(Text, nullable=True)
    category = Column(Text, nullable=True, index=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    @property
    def is_low_stock(self) -> bool:
        return (self.current_stock or 0) <= (self.minimum_stock or 0)

    @property
    def stock_value(self) -> float:
        return (self.current_stock or 0) * (self.unit_cost or 0.0)


__all__ = ["InventoryItem"]
