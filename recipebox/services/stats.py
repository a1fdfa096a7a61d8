"""Like/comment stats for recipes and comments.

Counts are always recomputed from the like/comment rows; nothing caches or
increments a counter. Single-recipe stats come from the ``get_recipe_stats``
routine when the database has it, otherwise from three independent reads.
List views use the ``*_many`` variants, which issue one grouped query per
count regardless of how many items are on the page.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable

from sqlalchemy import select, func, text
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.db.comment_tables import RecipeCommentRow, CommentLikeRow
from recipebox.db.routines import routines_available
from recipebox.db.social_tables import RecipeLikeRow
from recipebox.db.tables import RecipeRow
from recipebox.errors import NotFound, persistence_guard
from recipebox.models import RecipeStats, CommentStats

logger = logging.getLogger(__name__)


async def _count(session: AsyncSession, model, fk: str, value: str) -> int:
    result = await session.execute(
        select(func.count()).select_from(model).where(getattr(model, fk) == value)
    )
    return result.scalar() or 0


async def _grouped_counts(session: AsyncSession, model, fk: str, values: list[str]) -> dict[str, int]:
    if not values:
        return {}
    column = getattr(model, fk)
    result = await session.execute(
        select(column, func.count()).where(column.in_(values)).group_by(column)
    )
    return {key: count for key, count in result.all()}


async def _viewer_liked(
    session: AsyncSession, model, fk: str, values: list[str], viewer_id: str | None,
) -> set[str]:
    if not viewer_id or not values:
        return set()
    column = getattr(model, fk)
    result = await session.execute(
        select(column).where(column.in_(values), model.user_id == viewer_id)
    )
    return {row[0] for row in result.all()}


class RecipeStatsReader(ABC):
    """Reads the stats snapshot for one recipe."""

    @abstractmethod
    async def read(self, session: AsyncSession, recipe_id: str, viewer_id: str | None) -> RecipeStats:
        ...


class RoutineStatsReader(RecipeStatsReader):
    """One round trip through the ``get_recipe_stats`` routine."""

    async def read(self, session, recipe_id, viewer_id):
        result = await session.execute(
            text("SELECT like_count, comment_count, user_has_liked FROM get_recipe_stats(:recipe_id, :viewer_id)"),
            {"recipe_id": recipe_id, "viewer_id": viewer_id},
        )
        row = result.mappings().one()
        return RecipeStats(
            recipe_id=recipe_id,
            like_count=row["like_count"] or 0,
            comment_count=row["comment_count"] or 0,
            user_has_liked=bool(row["user_has_liked"]) if viewer_id else False,
        )


class QueryStatsReader(RecipeStatsReader):
    """Three independent reads; they may observe slightly different instants."""

    async def read(self, session, recipe_id, viewer_id):
        like_count = await _count(session, RecipeLikeRow, "recipe_id", recipe_id)
        comment_count = await _count(session, RecipeCommentRow, "recipe_id", recipe_id)
        liked = await _viewer_liked(session, RecipeLikeRow, "recipe_id", [recipe_id], viewer_id)
        return RecipeStats(
            recipe_id=recipe_id,
            like_count=like_count,
            comment_count=comment_count,
            user_has_liked=recipe_id in liked,
        )


class StatsAggregator:
    """Counts plus viewer-relative flags for recipes and comments."""

    def __init__(self, session: AsyncSession, reader: RecipeStatsReader | None = None):
        self.session = session
        self._reader = reader

    async def _get_reader(self) -> RecipeStatsReader:
        if self._reader is None:
            if await routines_available(self.session):
                self._reader = RoutineStatsReader()
            else:
                self._reader = QueryStatsReader()
        return self._reader

    async def recipe_stats(self, recipe_id: str, viewer_id: str | None = None) -> RecipeStats:
        with persistence_guard("load recipe stats"):
            if await self.session.get(RecipeRow, recipe_id) is None:
                raise NotFound("Recipe not found")
            reader = await self._get_reader()
            return await reader.read(self.session, recipe_id, viewer_id)

    async def comment_stats(self, comment_id: str, viewer_id: str | None = None) -> CommentStats:
        with persistence_guard("load comment stats"):
            if await self.session.get(RecipeCommentRow, comment_id) is None:
                raise NotFound("Comment not found")
            stats = await self.comment_stats_many([comment_id], viewer_id)
        return stats[comment_id]

    async def recipe_stats_many(
        self, recipe_ids: Iterable[str], viewer_id: str | None = None,
    ) -> dict[str, RecipeStats]:
        """Stats for a page of recipes: one grouped query per count."""
        ids = list(dict.fromkeys(recipe_ids))
        with persistence_guard("load recipe stats"):
            likes = await _grouped_counts(self.session, RecipeLikeRow, "recipe_id", ids)
            comments = await _grouped_counts(self.session, RecipeCommentRow, "recipe_id", ids)
            liked = await _viewer_liked(self.session, RecipeLikeRow, "recipe_id", ids, viewer_id)
        return {
            rid: RecipeStats(
                recipe_id=rid,
                like_count=likes.get(rid, 0),
                comment_count=comments.get(rid, 0),
                user_has_liked=rid in liked,
            )
            for rid in ids
        }

    async def comment_stats_many(
        self, comment_ids: Iterable[str], viewer_id: str | None = None,
    ) -> dict[str, CommentStats]:
        ids = list(dict.fromkeys(comment_ids))
        with persistence_guard("load comment stats"):
            likes = await _grouped_counts(self.session, CommentLikeRow, "comment_id", ids)
            liked = await _viewer_liked(self.session, CommentLikeRow, "comment_id", ids, viewer_id)
        return {
            cid: CommentStats(
                comment_id=cid,
                like_count=likes.get(cid, 0),
                user_has_liked=cid in liked,
            )
            for cid in ids
        }
