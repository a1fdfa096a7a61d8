"""Password changes and token-based password resets.

Reset flow:
1. ``request_reset(email)`` issues a single-use token that expires in 15 minutes
2. ``reset(email, token, new_password)`` checks the token and sets the new password

Only a SHA-256 of each token is kept, and requesting a new token drops the
account's older ones.
"""
from __future__ import annotations

import hashlib
import logging
import secrets
import time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.auth import hash_password, verify_password
from recipebox.db.user_tables import UserRow
from recipebox.errors import Unauthenticated, ValidationError, persistence_guard

logger = logging.getLogger(__name__)

# In-memory token store: {hashed_token: {"user_id": str, "expires": float}}
_reset_tokens: dict[str, dict] = {}

_RESET_TTL = 900  # 15 minutes
_TOKEN_LENGTH = 32  # 256-bit token


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _cleanup_expired():
    now = time.time()
    expired = [k for k, v in _reset_tokens.items() if v["expires"] < now]
    for k in expired:
        del _reset_tokens[k]


def reset_token_store():
    """Clear all tokens (for testing)."""
    _reset_tokens.clear()


class PasswordService:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def change(self, user: Optional[UserRow], current_password: str, new_password: str):
        """Replace the caller's password after re-checking the current one."""
        if user is None:
            raise Unauthenticated("You must be logged in to change your password")
        if not verify_password(current_password, user.password_hash):
            raise Unauthenticated("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must be different from current password")

        with persistence_guard("change password"):
            user.password_hash = hash_password(new_password)
            await self.session.commit()
        logger.info(f"User {user.id} changed password")

    async def request_reset(self, email: str) -> Optional[str]:
        """Issue a reset token, or None when no account has this email."""
        _cleanup_expired()
        with persistence_guard("look up account"):
            result = await self.session.execute(
                select(UserRow.id).where(UserRow.email == email.strip().lower())
            )
            user_id = result.scalar_one_or_none()
        if user_id is None:
            return None

        for k in [k for k, v in _reset_tokens.items() if v["user_id"] == user_id]:
            del _reset_tokens[k]
        token = secrets.token_urlsafe(_TOKEN_LENGTH)
        _reset_tokens[_hash_token(token)] = {"user_id": user_id, "expires": time.time() + _RESET_TTL}
        logger.info(f"Password reset requested for user {user_id}")
        return token

    async def reset(self, email: str, token: str, new_password: str):
        _cleanup_expired()
        hashed = _hash_token(token)
        token_data = _reset_tokens.get(hashed)
        if not token_data:
            raise ValidationError("Invalid or expired reset token")

        with persistence_guard("reset password"):
            result = await self.session.execute(
                select(UserRow).where(
                    UserRow.id == token_data["user_id"],
                    UserRow.email == email.strip().lower(),
                )
            )
            user = result.scalar_one_or_none()
            if user is None:
                raise ValidationError("Invalid or expired reset token")
            user.password_hash = hash_password(new_password)
            await self.session.commit()

        # Single use
        _reset_tokens.pop(hashed, None)
        logger.info(f"Password reset completed for user {user.id}")
