"""Comments API — conversation on recipes."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.auth import get_viewer_id
from recipebox.db.engine import get_session
from recipebox.models import Comment, CommentCreate, CommentUpdate, CommentsResult
from recipebox.services.comments import CommentService

router = APIRouter(prefix="/api/v1", tags=["comments"])


@router.get("/recipes/{recipe_id}/comments", response_model=CommentsResult)
async def list_comments(
    recipe_id: str,
    response: Response,
    strict: bool = Query(False, description="Fail with 503 instead of returning a degraded empty list"),
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    """Comments oldest first, each with author names and like stats."""
    service = CommentService(session)
    if strict:
        return CommentsResult(comments=await service.list_comments_strict(recipe_id, viewer_id))
    result = await service.list_comments(recipe_id, viewer_id)
    if result.degraded:
        response.headers["Cache-Control"] = "no-store"
    return result


@router.post("/recipes/{recipe_id}/comments", response_model=Comment, status_code=201)
async def post_comment(
    recipe_id: str,
    req: CommentCreate,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    return await CommentService(session).create_comment(recipe_id, viewer_id, req.content)


@router.patch("/comments/{comment_id}", response_model=Comment)
async def edit_comment(
    comment_id: str,
    req: CommentUpdate,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    """Edit your own comment."""
    return await CommentService(session).update_comment(comment_id, viewer_id, req.content)


@router.delete("/comments/{comment_id}", status_code=204)
async def delete_comment(
    comment_id: str,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    session: AsyncSession = Depends(get_session),
):
    """Delete your own comment (and its likes)."""
    await CommentService(session).delete_comment(comment_id, viewer_id)
    return Response(status_code=204)
