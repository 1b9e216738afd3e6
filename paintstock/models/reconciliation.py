"""Physical stock counts and the per-item lines they recorded."""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class Reconciliation(Base):
    __tablename__ = "reconciliations"

    id = Column(Integer, primary_key=True, index=True)
    reconciled_by = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False, index=True)
    updated_at = Column(Text, nullable=True)

    items = relationship(
        "ReconciliationItem",
        back_populates="reconciliation",
        cascade="all, delete-orphan",
        order_by="ReconciliationItem.id",
    )


class ReconciliationItem(Base):
    """One counted item: what the system said versus what was on the shelf."""

    __tablename__ = "reconciliation_items"

    id = Column(Integer, primary_key=True, index=True)
    reconciliation_id = Column(Integer, ForeignKey("reconciliations.id", ondelete="CASCADE"), nullable=False, index=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False, index=True)
    recorded_quantity = Column(Integer, nullable=False)
    actual_quantity = Column(Integer, nullable=False)
    # Highest inventory_transactions.id when the count was taken; NULL on rows counted before it existed.
    last_transaction_id = Column(Integer, nullable=True)
    created_at = Column(Text, nullable=False, index=True)

    reconciliation = relationship("Reconciliation", back_populates="items")
    item = relationship("InventoryItem", lazy="joined")

    @property
    def difference(self) -> int:
        return self.actual_quantity - self.recorded_quantity

    @property
    def item_name(self) -> str | None:
        return self.item.name if self.item else None


__all__ = ["Reconciliation", "ReconciliationItem"]
