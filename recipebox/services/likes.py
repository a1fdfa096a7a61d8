"""Like toggles for recipes and comments.

A like is just the presence of a (target, user) row. Toggling deletes the
row if it exists and inserts it otherwise, then reports the new state with a
fresh count of the rows for that target.

Two interchangeable togglers do the work:

* ``RoutineLikeToggler`` calls the ``toggle_*_like`` stored routine, which
  toggles and recounts in one transaction on the server.
* ``ManualLikeToggler`` runs lookup / delete-or-insert / recount itself. Two
  concurrent toggles by the same user can both see "no like" and both
  insert; the loser hits the unique constraint, and that is reported as
  ``liked=True`` rather than an error.

``LikeService`` picks one via ``routines_available`` unless one is injected.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from sqlalchemy import select, delete, func, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.db.comment_tables import RecipeCommentRow, CommentLikeRow
from recipebox.db.routines import routines_available
from recipebox.db.social_tables import RecipeLikeRow
from recipebox.db.tables import RecipeRow
from recipebox.errors import Unauthenticated, TargetNotFound, persistence_guard
from recipebox.models import LikeToggleResponse
from recipebox.services.invalidation import revalidate_recipe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LikeTarget:
    """Where likes for one kind of target live."""
    name: str
    target_model: type
    like_model: type
    fk: str
    routine: str


RECIPE = LikeTarget("recipe", RecipeRow, RecipeLikeRow, "recipe_id", "toggle_recipe_like")
COMMENT = LikeTarget("comment", RecipeCommentRow, CommentLikeRow, "comment_id", "toggle_comment_like")


class LikeToggler(ABC):
    """Flips a like and returns the resulting state. Commits on success."""

    @abstractmethod
    async def toggle(
        self, session: AsyncSession, target: LikeTarget, target_id: str, user_id: str,
    ) -> LikeToggleResponse:
        ...


class RoutineLikeToggler(LikeToggler):

    async def toggle(self, session, target, target_id, user_id):
        result = await session.execute(
            text(f"SELECT liked, like_count FROM {target.routine}(:target_id, :user_id)"),
            {"target_id": target_id, "user_id": user_id},
        )
        row = result.mappings().one()
        await session.commit()
        return LikeToggleResponse(liked=row["liked"], like_count=row["like_count"])


class ManualLikeToggler(LikeToggler):

    async def _find_like(self, session, target, target_id, user_id):
        like_model = target.like_model
        result = await session.execute(
            select(like_model).where(
                getattr(like_model, target.fk) == target_id,
                like_model.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def _count(self, session, target, target_id) -> int:
        like_model = target.like_model
        result = await session.execute(
            select(func.count()).select_from(like_model).where(getattr(like_model, target.fk) == target_id)
        )
        return result.scalar() or 0

    async def toggle(self, session, target, target_id, user_id):
        like_model = target.like_model
        existing = await self._find_like(session, target, target_id, user_id)

        if existing is not None:
            await session.execute(
                delete(like_model).where(
                    getattr(like_model, target.fk) == target_id,
                    like_model.user_id == user_id,
                )
            )
            liked = False
        else:
            session.add(like_model(**{target.fk: target_id, "user_id": user_id}))
            try:
                await session.flush()
            except IntegrityError:
                await session.rollback()
                # Lost an insert race with a concurrent toggle only if the row is there now
                if await self._find_like(session, target, target_id, user_id) is None:
                    raise
                logger.info(f"Duplicate {target.name} like by {user_id} on {target_id}; treating as liked")
            liked = True

        like_count = await self._count(session, target, target_id)
        await session.commit()
        return LikeToggleResponse(liked=liked, like_count=like_count)


class LikeService:
    """Recipe and comment like toggles for the current viewer."""

    def __init__(self, session: AsyncSession, toggler: LikeToggler | None = None):
        self.session = session
        self._toggler = toggler

    async def _get_toggler(self) -> LikeToggler:
        if self._toggler is None:
            if await routines_available(self.session):
                self._toggler = RoutineLikeToggler()
            else:
                self._toggler = ManualLikeToggler()
        return self._toggler

    async def _toggle(self, target: LikeTarget, target_id: str, viewer_id: str | None) -> tuple[LikeToggleResponse, str]:
        """Toggle and return the result plus the id of the recipe whose pages changed."""
        if not viewer_id:
            raise Unauthenticated(f"You must be logged in to like {target.name}s")

        with persistence_guard(f"toggle {target.name} like"):
            row = await self.session.get(target.target_model, target_id)
            if row is None:
                raise TargetNotFound(f"{target.name.capitalize()} not found")
            recipe_id = row.id if target is RECIPE else row.recipe_id
            toggler = await self._get_toggler()
            try:
                result = await toggler.toggle(self.session, target, target_id, viewer_id)
            except Exception:
                await self.session.rollback()
                raise

        logger.info(
            f"User {viewer_id} {'liked' if result.liked else 'unliked'} {target.name} {target_id} "
            f"(now {result.like_count})"
        )
        return result, recipe_id

    async def toggle_recipe_like(self, recipe_id: str, viewer_id: str | None) -> LikeToggleResponse:
        result, _ = await self._toggle(RECIPE, recipe_id, viewer_id)
        revalidate_recipe(recipe_id)
        return result

    async def toggle_comment_like(self, comment_id: str, viewer_id: str | None) -> LikeToggleResponse:
        result, recipe_id = await self._toggle(COMMENT, comment_id, viewer_id)
        revalidate_recipe(recipe_id)
        return result
