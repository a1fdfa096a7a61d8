"""Recipe catalog operations: owner-guarded writes, reads with stats attached."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.db.repository import RecipeRepository
from recipebox.db.tables import RecipeRow
from recipebox.errors import Unauthenticated, Forbidden, NotFound, ValidationError, persistence_guard
from recipebox.models import Difficulty, Recipe, RecipeCreate, RecipeUpdate, RecipeWithStats
from recipebox.services.invalidation import revalidate_recipe
from recipebox.services.stats import StatsAggregator
from recipebox.services.text_lists import encode_text_list, parse_text_list

logger = logging.getLogger(__name__)


def _required_text(value: Optional[str], label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{label} is required")
    return value


def _required_list(value, label: str) -> str:
    encoded = encode_text_list(value if value is not None else [])
    if not parse_text_list(encoded):
        raise ValidationError(f"{label} are required")
    return encoded


def _check_cooking_time(minutes: Optional[int]) -> Optional[int]:
    if minutes is not None and minutes < 0:
        raise ValidationError("Cooking time cannot be negative")
    return minutes


def _difficulty(value) -> Optional[str]:
    if value is None:
        return None
    try:
        return Difficulty(value).value
    except ValueError:
        raise ValidationError("Difficulty must be one of: easy, medium, hard") from None


def _optional_text(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


class RecipeService:

    def __init__(self, session: AsyncSession, stats: StatsAggregator | None = None):
        self.session = session
        self.repo = RecipeRepository(session)
        self.stats = stats or StatsAggregator(session)

    async def _with_stats(self, recipes: list[Recipe], viewer_id: Optional[str]) -> list[RecipeWithStats]:
        stats = await self.stats.recipe_stats_many([r.id for r in recipes], viewer_id)
        return [
            RecipeWithStats(
                **r.model_dump(),
                like_count=stats[r.id].like_count,
                comment_count=stats[r.id].comment_count,
                user_has_liked=stats[r.id].user_has_liked,
            )
            for r in recipes
        ]

    async def _owned_row(self, recipe_id: str, viewer_id: Optional[str], action: str) -> RecipeRow:
        if not viewer_id:
            raise Unauthenticated(f"You must be logged in to {action} a recipe")
        with persistence_guard("load recipe"):
            row = await self.repo.get_row(recipe_id)
        if row is None:
            raise NotFound("Recipe not found")
        if row.user_id != viewer_id:
            raise Forbidden(f"You can only {action} your own recipes")
        return row

    async def create_recipe(self, viewer_id: Optional[str], data: RecipeCreate) -> RecipeWithStats:
        if not viewer_id:
            raise Unauthenticated("You must be logged in to create a recipe")
        row = RecipeRow(
            user_id=viewer_id,
            title=_required_text(data.title, "Recipe title"),
            description=_optional_text(data.description),
            ingredients=_required_list(data.ingredients, "Ingredients"),
            instructions=_required_list(data.instructions, "Instructions"),
            cooking_time=_check_cooking_time(data.cooking_time),
            difficulty=_difficulty(data.difficulty),
            category=_optional_text(data.category),
        )
        with persistence_guard("create recipe"):
            try:
                await self.repo.add(row)
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise

        logger.info(f"User {viewer_id} created recipe {row.id}")
        revalidate_recipe(row.id)
        return await self.get_recipe(row.id, viewer_id)

    async def update_recipe(self, recipe_id: str, viewer_id: Optional[str], changes: RecipeUpdate) -> RecipeWithStats:
        row = await self._owned_row(recipe_id, viewer_id, "update")
        fields = changes.model_dump(exclude_unset=True)

        # Validate everything before touching the row
        updates = {}
        if "title" in fields:
            updates["title"] = _required_text(fields["title"], "Recipe title")
        if "description" in fields:
            updates["description"] = _optional_text(fields["description"])
        if "ingredients" in fields:
            updates["ingredients"] = _required_list(fields["ingredients"], "Ingredients")
        if "instructions" in fields:
            updates["instructions"] = _required_list(fields["instructions"], "Instructions")
        if "cooking_time" in fields:
            updates["cooking_time"] = _check_cooking_time(fields["cooking_time"])
        if "difficulty" in fields:
            updates["difficulty"] = _difficulty(fields["difficulty"])
        if "category" in fields:
            updates["category"] = _optional_text(fields["category"])

        with persistence_guard("update recipe"):
            for key, value in updates.items():
                setattr(row, key, value)
            try:
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise

        logger.info(f"User {viewer_id} updated recipe {recipe_id} ({', '.join(updates) or 'no changes'})")
        revalidate_recipe(recipe_id)
        return await self.get_recipe(recipe_id, viewer_id)

    async def delete_recipe(self, recipe_id: str, viewer_id: Optional[str]) -> None:
        await self._owned_row(recipe_id, viewer_id, "delete")
        with persistence_guard("delete recipe"):
            try:
                await self.repo.delete(recipe_id)
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise

        logger.info(f"User {viewer_id} deleted recipe {recipe_id}")
        revalidate_recipe(recipe_id)

    async def get_recipe(self, recipe_id: str, viewer_id: Optional[str] = None) -> RecipeWithStats:
        with persistence_guard("fetch recipe"):
            recipe = await self.repo.get_by_id(recipe_id)
        if recipe is None:
            raise NotFound("Recipe not found")
        stats = await self.stats.recipe_stats(recipe_id, viewer_id)
        return RecipeWithStats(
            **recipe.model_dump(),
            like_count=stats.like_count,
            comment_count=stats.comment_count,
            user_has_liked=stats.user_has_liked,
        )

    async def list_recipes(
        self,
        viewer_id: Optional[str] = None,
        category: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[RecipeWithStats], int]:
        with persistence_guard("fetch recipes"):
            recipes = await self.repo.list_recipes(category=category, limit=limit, offset=offset)
            total = await self.repo.count(category=category)
        return await self._with_stats(recipes, viewer_id), total

    async def search_recipes(
        self, query: str, viewer_id: Optional[str] = None, limit: int = 20, offset: int = 0,
    ) -> tuple[list[RecipeWithStats], int]:
        query = query.strip()
        if not query:
            raise ValidationError("Search query is required")
        with persistence_guard("search recipes"):
            recipes = await self.repo.search(query, limit=limit, offset=offset)
            total = await self.repo.search_count(query)
        return await self._with_stats(recipes, viewer_id), total

    async def list_user_recipes(self, user_id: str, viewer_id: Optional[str] = None) -> list[RecipeWithStats]:
        with persistence_guard("fetch user recipes"):
            total = await self.repo.count(user_id=user_id)
            recipes = await self.repo.list_recipes(user_id=user_id, limit=max(total, 1))
        return await self._with_stats(recipes, viewer_id)
