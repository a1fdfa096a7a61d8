"""Accounts and profiles: registration, login, profile edits."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.auth import hash_password, verify_password, SignUpRequest
from recipebox.db.tables import utcnow
from recipebox.db.user_tables import UserRow, ProfileRow
from recipebox.errors import Conflict, NotFound, Unauthenticated, ValidationError, persistence_guard
from recipebox.models import Profile, ProfileUpdate
from recipebox.services.invalidation import revalidate

logger = logging.getLogger(__name__)


def _to_profile(row: ProfileRow) -> Profile:
    return Profile(
        id=row.id,
        username=row.username,
        full_name=row.full_name,
        bio=row.bio,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class ProfileService:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _username_taken(self, username: str, exclude_id: Optional[str] = None) -> bool:
        stmt = select(ProfileRow.id).where(ProfileRow.username == username)
        if exclude_id:
            stmt = stmt.where(ProfileRow.id != exclude_id)
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def register(self, req: SignUpRequest) -> tuple[UserRow, Profile]:
        """Create an account and its profile together."""
        email = req.email.strip().lower()
        username = req.username.strip()
        full_name = req.full_name.strip()
        if not email or "@" not in email:
            raise ValidationError("A valid email is required")
        if not username or not full_name:
            raise ValidationError("Username and full name are required")

        with persistence_guard("register account"):
            existing = await self.session.execute(select(UserRow.id).where(UserRow.email == email))
            if existing.first():
                raise Conflict("Email already registered")
            if await self._username_taken(username):
                raise Conflict("Username already taken")

            user = UserRow(email=email, password_hash=hash_password(req.password))
            self.session.add(user)
            await self.session.flush()
            now = utcnow()
            profile = ProfileRow(
                id=user.id, username=username, full_name=full_name,
                created_at=now, updated_at=now,
            )
            self.session.add(profile)
            try:
                await self.session.commit()
            except IntegrityError:
                await self.session.rollback()
                raise Conflict("Email or username already taken") from None

        logger.info(f"Registered user {user.id} ({username})")
        return user, _to_profile(profile)

    async def authenticate(self, email: str, password: str) -> UserRow:
        with persistence_guard("log in"):
            result = await self.session.execute(
                select(UserRow).where(UserRow.email == email.strip().lower())
            )
            user = result.scalar_one_or_none()
        if not user or not verify_password(password, user.password_hash):
            raise Unauthenticated("Invalid email or password")
        return user

    async def get_profile(self, user_id: str) -> Profile:
        with persistence_guard("fetch profile"):
            row = await self.session.get(ProfileRow, user_id)
        if row is None:
            raise NotFound("Profile not found")
        return _to_profile(row)

    async def update_profile(self, user_id: Optional[str], updates: ProfileUpdate) -> Profile:
        """Apply non-blank username/full_name changes; a blank bio clears it."""
        if not user_id:
            raise Unauthenticated("You must be logged in to update your profile")
        with persistence_guard("update profile"):
            row = await self.session.get(ProfileRow, user_id)
            if row is None:
                raise NotFound("Profile not found")

            fields = updates.model_dump(exclude_unset=True)
            username = (fields.get("username") or "").strip()
            full_name = (fields.get("full_name") or "").strip()
            if username and username != row.username:
                if await self._username_taken(username, exclude_id=user_id):
                    raise Conflict("Username already taken")
                row.username = username
            if full_name:
                row.full_name = full_name
            if "bio" in fields:
                row.bio = (fields["bio"] or "").strip() or None
            row.updated_at = utcnow()

            try:
                await self.session.commit()
            except IntegrityError:
                await self.session.rollback()
                raise Conflict("Username already taken") from None

        logger.info(f"User {user_id} updated profile")
        # Recipe pages render the author's name
        revalidate("/recipes", kind="layout")
        revalidate("/me/recipes")
        return _to_profile(row)
