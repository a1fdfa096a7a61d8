"""Password API: forgot/reset with a one-time token, and authenticated change.

1. POST /api/v1/auth/forgot-password issues a reset token (mailed in production)
2. POST /api/v1/auth/reset-password checks the token and sets a new password
3. POST /api/v1/auth/change-password requires the current password
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.auth import get_current_user
from recipebox.db.engine import get_session
from recipebox.db.user_tables import UserRow
from recipebox.services.passwords import PasswordService
from config.settings import settings

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

_RESET_SENT = "If an account exists with that email, a reset link has been sent."


class ForgotPasswordRequest(BaseModel):
    email: str = Field(..., max_length=320)


class ResetPasswordRequest(BaseModel):
    email: str = Field(..., max_length=320)
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


@router.post("/forgot-password")
async def forgot_password(body: ForgotPasswordRequest, session: AsyncSession = Depends(get_session)):
    """Request a reset token. Always 200, whether or not the account exists."""
    token = await PasswordService(session).request_reset(body.email)
    if token and settings.ENVIRONMENT != "production":
        return {"message": _RESET_SENT, "reset_token": token}
    return {"message": _RESET_SENT}


@router.post("/reset-password")
async def reset_password(body: ResetPasswordRequest, session: AsyncSession = Depends(get_session)):
    await PasswordService(session).reset(body.email, body.token, body.new_password)
    return {"message": "Password has been reset. Please log in with your new password."}


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    user: Optional[UserRow] = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await PasswordService(session).change(user, body.current_password, body.new_password)
    return {"message": "Password changed successfully"}
