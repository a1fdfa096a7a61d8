"""JWT authentication for RecipeBox — lightweight, no extra deps."""
from __future__ import annotations

import hashlib
import hmac
import json
import base64
import time
import uuid
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recipebox.db.engine import get_session
from recipebox.db.user_tables import UserRow
from recipebox.errors import Unauthenticated
from config.settings import settings

# ---- Password hashing (PBKDF2) ----

_ITERATIONS = 260_000
_SALT_LEN = 32


def hash_password(password: str) -> str:
    salt = uuid.uuid4().hex[:_SALT_LEN]
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), _ITERATIONS)
    return f"{salt}${dk.hex()}"


def verify_password(password: str, stored: str) -> bool:
    salt, dk_hex = stored.split("$", 1)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), _ITERATIONS)
    return hmac.compare_digest(dk.hex(), dk_hex)


# ---- JWT (HS256) ----

_JWT_ALGO = "HS256"
_ACCESS_TTL = 3600 * 24 * 7  # 7 days
_REFRESH_TTL = 3600 * 24 * 30  # 30 days


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64url_decode(s: str) -> bytes:
    s += "=" * (-len(s) % 4)
    return base64.urlsafe_b64decode(s)


def _sign(payload: dict) -> str:
    header = _b64url(json.dumps({"alg": _JWT_ALGO, "typ": "JWT"}).encode())
    body = _b64url(json.dumps(payload).encode())
    sig_input = f"{header}.{body}".encode()
    sig = hmac.new(settings.JWT_SECRET.encode(), sig_input, hashlib.sha256).digest()
    return f"{header}.{body}.{_b64url(sig)}"


def verify_token(token: str, token_type: str = "access") -> Optional[dict]:
    """Return the payload of a valid, unexpired token of the given type, else None."""
    parts = token.split(".")
    if len(parts) != 3:
        return None
    try:
        sig_input = f"{parts[0]}.{parts[1]}".encode()
        expected = hmac.new(settings.JWT_SECRET.encode(), sig_input, hashlib.sha256).digest()
        actual = _b64url_decode(parts[2])
        if not hmac.compare_digest(expected, actual):
            return None
        payload = json.loads(_b64url_decode(parts[1]))
    except (ValueError, TypeError):
        return None
    if not isinstance(payload, dict) or payload.get("exp", 0) < time.time():
        return None
    if payload.get("type") != token_type:
        return None
    return payload


def create_tokens(user_id: str) -> dict:
    now = int(time.time())
    nonce = uuid.uuid4().hex[:8]
    access = _sign({"sub": user_id, "iat": now, "exp": now + _ACCESS_TTL, "type": "access", "jti": nonce})
    refresh = _sign({"sub": user_id, "iat": now, "exp": now + _REFRESH_TTL, "type": "refresh", "jti": nonce + "r"})
    return {"access_token": access, "refresh_token": refresh, "token_type": "bearer"}


# ---- FastAPI dependencies ----

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    session: AsyncSession = Depends(get_session),
) -> Optional[UserRow]:
    """The viewer behind the bearer token, or None for anonymous requests."""
    if not creds:
        return None
    payload = verify_token(creds.credentials, "access")
    if not payload:
        return None
    result = await session.execute(select(UserRow).where(UserRow.id == payload["sub"]))
    return result.scalar_one_or_none()


async def get_viewer_id(user: Optional[UserRow] = Depends(get_current_user)) -> Optional[str]:
    return user.id if user else None


async def require_user(user: Optional[UserRow] = Depends(get_current_user)) -> UserRow:
    if not user:
        raise Unauthenticated()
    return user


# ---- Request/Response models ----

class SignUpRequest(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=6)
    username: str = Field(..., min_length=1, max_length=50)
    full_name: str = Field(..., min_length=1, max_length=200)


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str
