"""SQLAlchemy ORM models for the recipe catalog."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite hands back naive datetimes, so store them that way everywhere."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class RecipeRow(Base):
    __tablename__ = "recipes"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # JSON array text for new rows; older rows may hold newline-delimited text
    ingredients = Column(Text, nullable=False)
    instructions = Column(Text, nullable=False)

    cooking_time = Column(Integer, nullable=True)  # minutes
    difficulty = Column(String(10), nullable=True)  # easy | medium | hard
    category = Column(String(50), nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_recipes_created", "created_at"),
    )
