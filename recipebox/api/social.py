"""Social API: like toggles and engagement stats."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.auth import get_viewer_id
from recipebox.db.engine import get_session
from recipebox.models import CommentStats, LikeToggleResponse, RecipeStats
from recipebox.services.likes import LikeService
from recipebox.services.stats import StatsAggregator

router = APIRouter(prefix="/api/v1", tags=["social"])


# ── Likes ────────────────────────────────────────────────────────────────────


@router.post("/recipes/{recipe_id}/like", response_model=LikeToggleResponse)
async def toggle_recipe_like(
    recipe_id: str,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    """Like the recipe, or unlike it if already liked."""
    return await LikeService(session).toggle_recipe_like(recipe_id, viewer_id)


@router.post("/comments/{comment_id}/like", response_model=LikeToggleResponse)
async def toggle_comment_like(
    comment_id: str,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    return await LikeService(session).toggle_comment_like(comment_id, viewer_id)


# ── Stats ────────────────────────────────────────────────────────────────────


@router.get("/recipes/{recipe_id}/stats", response_model=RecipeStats)
async def recipe_stats(
    recipe_id: str,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    return await StatsAggregator(session).recipe_stats(recipe_id, viewer_id)


@router.get("/comments/{comment_id}/stats", response_model=CommentStats)
async def comment_stats(
    comment_id: str,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    return await StatsAggregator(session).comment_stats(comment_id, viewer_id)
