"""Comment database tables — conversation on recipes."""
from __future__ import annotations

from sqlalchemy import (
    Column, String, Text, ForeignKey, DateTime, Index, UniqueConstraint, CheckConstraint,
)

from recipebox.db.tables import Base, utcnow, new_id


class RecipeCommentRow(Base):
    """User comment on a recipe."""
    __tablename__ = "recipe_comments"

    id = Column(String(36), primary_key=True, default=new_id)
    recipe_id = Column(String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    # Differs from created_at once the author edits the comment
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("length(content) BETWEEN 1 AND 1000", name="ck_comment_content_length"),
        Index("ix_comments_recipe_created", "recipe_id", "created_at"),
    )


class CommentLikeRow(Base):
    """User like on a comment."""
    __tablename__ = "comment_likes"

    id = Column(String(36), primary_key=True, default=new_id)
    comment_id = Column(
        String(36), ForeignKey("recipe_comments.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("comment_id", "user_id", name="uq_comment_user_like"),
    )
