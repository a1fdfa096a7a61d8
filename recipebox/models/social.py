"""Social result models: likes, comments, stats."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, computed_field


class LikeToggleResponse(BaseModel):
    liked: bool
    like_count: int


class RecipeStats(BaseModel):
    recipe_id: str
    like_count: int = 0
    comment_count: int = 0
    user_has_liked: bool = False


class CommentStats(BaseModel):
    comment_id: str
    like_count: int = 0
    user_has_liked: bool = False


class CommentCreate(BaseModel):
    content: str


class CommentUpdate(BaseModel):
    content: str


class Comment(BaseModel):
    """A comment with its author's display fields and like stats."""
    id: str
    recipe_id: str
    user_id: str
    content: str
    created_at: datetime
    updated_at: datetime
    username: str = "Unknown"
    full_name: str = "Unknown User"
    like_count: int = 0
    user_has_liked: bool = False

    @computed_field
    @property
    def is_edited(self) -> bool:
        return self.updated_at != self.created_at


class CommentsResult(BaseModel):
    """Comment listing. ``degraded`` means the fetch failed and ``comments`` is empty for that reason."""
    comments: list[Comment] = Field(default_factory=list)
    degraded: bool = False

    @computed_field
    @property
    def total(self) -> int:
        return len(self.comments)
