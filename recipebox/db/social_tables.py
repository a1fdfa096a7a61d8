"""Social tables: recipe likes."""
from __future__ import annotations

from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint

from recipebox.db.tables import Base, utcnow, new_id


class RecipeLikeRow(Base):
    """A user currently likes a recipe. Unliking deletes the row."""
    __tablename__ = "recipe_likes"

    id = Column(String(36), primary_key=True, default=new_id)
    recipe_id = Column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id = Column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("recipe_id", "user_id", name="uq_recipe_user_like"),
    )
