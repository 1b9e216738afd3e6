"""SQLAlchemy model for painting jobs that material and tools are charged to."""

from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base

PROJECT_STATUSES = ("active", "completed", "archived")


class Project(Base):
    """A job site. Its ``name`` doubles as a tool location."""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="active", index=True)
    start_date = Column(Text, nullable=True)
    end_date = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)


__all__ = ["Project", "PROJECT_STATUSES"]
