"""Comment CRUD with ownership checks and author/like denormalization."""
from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from recipebox.db.comment_tables import RecipeCommentRow, CommentLikeRow
from recipebox.db.tables import RecipeRow, utcnow
from recipebox.db.user_tables import ProfileRow
from recipebox.errors import (
    Unauthenticated, Forbidden, NotFound, ValidationError, PersistenceFailure, persistence_guard,
)
from recipebox.models import Comment, CommentsResult
from recipebox.services.invalidation import revalidate_recipe
from recipebox.services.stats import StatsAggregator

logger = logging.getLogger(__name__)

UNKNOWN_USERNAME = "Unknown"
UNKNOWN_FULL_NAME = "Unknown User"


def clean_content(content: str | None) -> str:
    """Trim and bound comment text. Raises ValidationError."""
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment content is required")
    if len(content) > settings.COMMENT_MAX_LENGTH:
        raise ValidationError(f"Comment must be {settings.COMMENT_MAX_LENGTH} characters or less")
    return content


def _to_comment(row: RecipeCommentRow, author: ProfileRow | None, like_count=0, user_has_liked=False) -> Comment:
    return Comment(
        id=row.id,
        recipe_id=row.recipe_id,
        user_id=row.user_id,
        content=row.content,
        created_at=row.created_at,
        updated_at=row.updated_at,
        username=author.username if author and author.username else UNKNOWN_USERNAME,
        full_name=author.full_name if author and author.full_name else UNKNOWN_FULL_NAME,
        like_count=like_count,
        user_has_liked=user_has_liked,
    )


class CommentService:
    """Create/update/delete/list comments on recipes."""

    def __init__(self, session: AsyncSession, stats: StatsAggregator | None = None):
        self.session = session
        self.stats = stats or StatsAggregator(session)

    async def _author(self, user_id: str) -> ProfileRow | None:
        return await self.session.get(ProfileRow, user_id)

    async def _owned_comment(self, comment_id: str, requester_id: str | None, action: str) -> RecipeCommentRow:
        if not requester_id:
            raise Unauthenticated(f"You must be logged in to {action} comments")
        with persistence_guard("load comment"):
            comment = await self.session.get(RecipeCommentRow, comment_id)
        if comment is None:
            raise NotFound("Comment not found")
        if comment.user_id != requester_id:
            raise Forbidden(f"You can only {action} your own comments")
        return comment

    async def create_comment(self, recipe_id: str, author_id: str | None, content: str) -> Comment:
        if not author_id:
            raise Unauthenticated("You must be logged in to comment")
        content = clean_content(content)

        with persistence_guard("create comment"):
            if await self.session.get(RecipeRow, recipe_id) is None:
                raise NotFound("Recipe not found")
            now = utcnow()
            comment = RecipeCommentRow(
                recipe_id=recipe_id,
                user_id=author_id,
                content=content,
                created_at=now,
                updated_at=now,
            )
            self.session.add(comment)
            try:
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise
            author = await self._author(author_id)

        logger.info(f"User {author_id} posted comment {comment.id} on recipe {recipe_id}")
        revalidate_recipe(recipe_id)
        return _to_comment(comment, author)

    async def update_comment(self, comment_id: str, requester_id: str | None, new_content: str) -> Comment:
        comment = await self._owned_comment(comment_id, requester_id, "update")
        content = clean_content(new_content)

        with persistence_guard("update comment"):
            now = utcnow()
            # Edits must stay distinguishable from the original post
            if now <= comment.created_at:
                now = comment.created_at + timedelta(microseconds=1)
            comment.content = content
            comment.updated_at = now
            try:
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise
            author = await self._author(comment.user_id)
            stats = await self.stats.comment_stats_many([comment.id], requester_id)

        logger.info(f"User {requester_id} edited comment {comment_id}")
        revalidate_recipe(comment.recipe_id)
        s = stats[comment.id]
        return _to_comment(comment, author, s.like_count, s.user_has_liked)

    async def delete_comment(self, comment_id: str, requester_id: str | None) -> None:
        comment = await self._owned_comment(comment_id, requester_id, "delete")
        recipe_id = comment.recipe_id

        with persistence_guard("delete comment"):
            try:
                await self.session.execute(
                    delete(CommentLikeRow).where(CommentLikeRow.comment_id == comment_id)
                )
                await self.session.delete(comment)
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise

        logger.info(f"User {requester_id} deleted comment {comment_id}")
        revalidate_recipe(recipe_id)

    async def list_comments_strict(self, recipe_id: str, viewer_id: str | None = None) -> list[Comment]:
        """Oldest-first comments for a recipe. Raises PersistenceFailure on store errors."""
        with persistence_guard("fetch comments"):
            result = await self.session.execute(
                select(RecipeCommentRow, ProfileRow)
                .outerjoin(ProfileRow, RecipeCommentRow.user_id == ProfileRow.id)
                .where(RecipeCommentRow.recipe_id == recipe_id)
                .order_by(RecipeCommentRow.created_at.asc(), RecipeCommentRow.id.asc())
            )
            rows = result.all()
        stats = await self.stats.comment_stats_many([c.id for c, _ in rows], viewer_id)
        return [
            _to_comment(c, author, stats[c.id].like_count, stats[c.id].user_has_liked)
            for c, author in rows
        ]

    async def list_comments(self, recipe_id: str, viewer_id: str | None = None) -> CommentsResult:
        """Like ``list_comments_strict`` but a failed fetch yields an empty, degraded result."""
        try:
            comments = await self.list_comments_strict(recipe_id, viewer_id)
        except PersistenceFailure:
            logger.warning(f"Comment feed for recipe {recipe_id} unavailable; returning degraded result")
            return CommentsResult(comments=[], degraded=True)
        return CommentsResult(comments=comments)
