"""Recipe catalog API: browse, search, create, edit, delete."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.auth import get_viewer_id
from recipebox.db.engine import get_session
from recipebox.models import RECIPE_CATEGORIES, RecipeCreate, RecipeUpdate, RecipeWithStats
from recipebox.services.recipes import RecipeService

router = APIRouter(prefix="/api/v1", tags=["recipes"])


def _page(recipes: list[RecipeWithStats], total: int, limit: int, offset: int) -> dict:
    return {
        "data": recipes,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        },
    }


@router.get("/recipes")
async def list_recipes(
    category: Optional[str] = Query(None, max_length=50),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    """Newest recipes first, with like/comment counts."""
    recipes, total = await RecipeService(session).list_recipes(
        viewer_id=viewer_id, category=category, limit=limit, offset=offset,
    )
    return _page(recipes, total, limit, offset)


@router.get("/recipes/search")
async def search_recipes(
    q: str = Query(..., min_length=1, max_length=200),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    """Case-insensitive search across titles, descriptions and ingredients."""
    recipes, total = await RecipeService(session).search_recipes(q, viewer_id, limit=limit, offset=offset)
    return _page(recipes, total, limit, offset)


@router.get("/recipes/categories")
async def list_categories():
    return {"data": list(RECIPE_CATEGORIES)}


@router.post("/recipes", response_model=RecipeWithStats, status_code=201)
async def create_recipe(
    req: RecipeCreate,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    return await RecipeService(session).create_recipe(viewer_id, req)


@router.get("/recipes/{recipe_id}", response_model=RecipeWithStats)
async def get_recipe(
    recipe_id: str,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    return await RecipeService(session).get_recipe(recipe_id, viewer_id)


@router.patch("/recipes/{recipe_id}", response_model=RecipeWithStats)
async def update_recipe(
    recipe_id: str,
    req: RecipeUpdate,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    """Partial update. Only the recipe's author may edit it."""
    return await RecipeService(session).update_recipe(recipe_id, viewer_id, req)


@router.delete("/recipes/{recipe_id}", status_code=204)
async def delete_recipe(
    recipe_id: str,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    """Delete a recipe with its likes and comments. Author only."""
    await RecipeService(session).delete_recipe(recipe_id, viewer_id)
    return Response(status_code=204)
