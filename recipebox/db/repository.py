"""Recipe repository — DB CRUD operations + Pydantic conversion."""
from __future__ import annotations

from typing import Optional
from sqlalchemy import select, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.db.comment_tables import RecipeCommentRow, CommentLikeRow
from recipebox.db.social_tables import RecipeLikeRow
from recipebox.db.tables import RecipeRow
from recipebox.db.user_tables import ProfileRow
from recipebox.models import Recipe, Author
from recipebox.services.text_lists import parse_text_list


def _escape_like(value: str) -> str:
    """Escape LIKE wildcard characters in user input."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_recipe(row: RecipeRow, author: ProfileRow | None = None) -> Recipe:
    """Convert a DB row (plus its author's profile, if loaded) to a Pydantic Recipe."""
    return Recipe(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        description=row.description,
        ingredients=parse_text_list(row.ingredients),
        instructions=parse_text_list(row.instructions),
        cooking_time=row.cooking_time,
        difficulty=row.difficulty,
        category=row.category,
        created_at=row.created_at,
        author=Author(username=author.username, full_name=author.full_name) if author else None,
    )


class RecipeRepository:
    """Async recipe CRUD backed by SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _with_author(self):
        return select(RecipeRow, ProfileRow).outerjoin(ProfileRow, RecipeRow.user_id == ProfileRow.id)

    async def get_row(self, recipe_id: str) -> Optional[RecipeRow]:
        return await self.session.get(RecipeRow, recipe_id)

    async def get_by_id(self, recipe_id: str) -> Optional[Recipe]:
        result = await self.session.execute(self._with_author().where(RecipeRow.id == recipe_id))
        row = result.first()
        return _row_to_recipe(*row) if row else None

    async def list_recipes(
        self,
        category: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Recipe]:
        """Newest first, optionally filtered by category or author."""
        stmt = self._with_author()
        if category:
            stmt = stmt.where(RecipeRow.category == category)
        if user_id:
            stmt = stmt.where(RecipeRow.user_id == user_id)
        stmt = stmt.order_by(RecipeRow.created_at.desc(), RecipeRow.id.asc()).offset(offset).limit(limit)
        result = await self.session.execute(stmt)
        return [_row_to_recipe(r, a) for r, a in result.all()]

    async def count(self, category: Optional[str] = None, user_id: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(RecipeRow)
        if category:
            stmt = stmt.where(RecipeRow.category == category)
        if user_id:
            stmt = stmt.where(RecipeRow.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    def _search_filter(self, query: str):
        pattern = f"%{_escape_like(query)}%"
        return or_(
            RecipeRow.title.ilike(pattern, escape="\\"),
            RecipeRow.description.ilike(pattern, escape="\\"),
            RecipeRow.ingredients.ilike(pattern, escape="\\"),
        )

    async def search(self, query: str, limit: int = 20, offset: int = 0) -> list[Recipe]:
        """Case-insensitive substring search over title, description and ingredients."""
        stmt = (
            self._with_author()
            .where(self._search_filter(query))
            .order_by(RecipeRow.created_at.desc(), RecipeRow.id.asc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [_row_to_recipe(r, a) for r, a in result.all()]

    async def search_count(self, query: str) -> int:
        stmt = select(func.count()).select_from(RecipeRow).where(self._search_filter(query))
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def add(self, row: RecipeRow) -> RecipeRow:
        self.session.add(row)
        await self.session.flush()
        return row

    async def delete(self, recipe_id: str) -> None:
        """Delete a recipe along with its likes, comments and comment likes."""
        comment_ids = select(RecipeCommentRow.id).where(RecipeCommentRow.recipe_id == recipe_id)
        await self.session.execute(delete(CommentLikeRow).where(CommentLikeRow.comment_id.in_(comment_ids)))
        await self.session.execute(delete(RecipeCommentRow).where(RecipeCommentRow.recipe_id == recipe_id))
        await self.session.execute(delete(RecipeLikeRow).where(RecipeLikeRow.recipe_id == recipe_id))
        await self.session.execute(delete(RecipeRow).where(RecipeRow.id == recipe_id))
