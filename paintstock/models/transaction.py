"""Stock movement history: one row per cart line received or checked out."""

from __future__ import annotations

from sqlalchemy import Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base

CHECKOUT = "checkout"
RESTOCK = "restock"
TRANSACTION_TYPES = (CHECKOUT, RESTOCK)


class InventoryTransaction(Base):
    __tablename__ = "inventory_transactions"
    # Ids are never reused after a void; stock counts use them as a cutoff.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)
    quantity = Column(Integer, nullable=False)
    unit_cost = Column(Float, nullable=False, default=0.0)
    total_cost = Column(Float, nullable=False, default=0.0)
    transaction_type = Column(Text, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    created_by = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False, index=True)
    batch_id = Column(Text, nullable=True, index=True)

    item = relationship("InventoryItem", lazy="joined")
    project = relationship("Project", lazy="joined")

    @property
    def item_name(self) -> str | None:
        return self.item.name if self.item else None

    @property
    def item_sku(self) -> str | None:
        return self.item.sku if self.item else None

    @property
    def project_name(self) -> str | None:
        return self.project.name if self.project else None

    @property
    def stock_change(self) -> int:
        """Signed effect of this row on ``current_stock``."""

        if self.transaction_type == CHECKOUT:
            return -self.quantity
        return self.quantity


__all__ = ["InventoryTransaction", "CHECKOUT", "RESTOCK", "TRANSACTION_TYPES"]
