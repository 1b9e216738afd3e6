from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base

TOOL_STATUSES = ("available", "in_use", "maintenance")
MOVEMENT_TYPES = ("checkout", "return", "transfer")


class Tool(Base):
    """Reusable equipment (sprayers, ladders, scaffolding) that travels between shop and jobs."""

    __tablename__ = "tools"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, index=True)
    sku = Column(Text, nullable=True, unique=True, index=True)
    description = Column(Text, nullable=True)
    type = Column(Text, nullable=True)
    location = Column(Text, nullable=False, default="shop", index=True)
    status = Column(Text, nullable=False, default="available")
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)


class ToolMovement(Base):
    __tablename__ = "tool_movements"

    id = Column(Integer, primary_key=True, index=True)
    tool_id = Column(Integer, ForeignKey("tools.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)
    from_location = Column(Text, nullable=False)
    to_location = Column(Text, nullable=False)
    movement_type = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    moved_by = Column(Text, nullable=False)
    moved_at = Column(Text, nullable=False, index=True)

    tool = relationship("Tool", lazy="joined")

    @property
    def tool_name(self) -> str | None:
        return self.tool.name if self.tool else None

    @property
    def tool_sku(self) -> str | None:
        return self.tool.sku if self.tool else None


__all__ = ["Tool", "ToolMovement", "TOOL_STATUSES", "MOVEMENT_TYPES"]
