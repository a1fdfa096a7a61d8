"""User profile API: own profile, public profiles, authored recipes."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.auth import get_viewer_id, require_user
from recipebox.db.engine import get_session
from recipebox.db.user_tables import UserRow
from recipebox.models import Profile, ProfileUpdate
from recipebox.services.profiles import ProfileService
from recipebox.services.recipes import RecipeService

router = APIRouter(prefix="/api/v1", tags=["users"])


@router.get("/me", response_model=Profile)
async def get_my_profile(
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    return await ProfileService(session).get_profile(user.id)


@router.patch("/me", response_model=Profile)
async def update_my_profile(
    req: ProfileUpdate,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """Update username, full name or bio. Blank fields are left alone; a blank bio clears it."""
    return await ProfileService(session).update_profile(user.id, req)


@router.get("/me/recipes")
async def my_recipes(
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    recipes = await RecipeService(session).list_user_recipes(user.id, user.id)
    return {"data": recipes, "total": len(recipes)}


@router.get("/users/{user_id}", response_model=Profile)
async def get_profile(user_id: str, session: AsyncSession = Depends(get_session)):
    return await ProfileService(session).get_profile(user_id)


@router.get("/users/{user_id}/recipes")
async def user_recipes(
    user_id: str,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    """Recipes authored by a user, newest first."""
    await ProfileService(session).get_profile(user_id)
    recipes = await RecipeService(session).list_user_recipes(user_id, viewer_id)
    return {"data": recipes, "total": len(recipes)}
