"""Shared test fixtures — single test DB for all test modules."""
from __future__ import annotations

from contextlib import asynccontextmanager

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

# Use a shared in-memory DB with check_same_thread=False and StaticPool
# This ensures all connections see the same in-memory database.
from sqlalchemy.pool import StaticPool

import recipebox.auth as _auth_mod
from recipebox.db.tables import Base
from recipebox.db.engine import get_session

TEST_DB_URL = "sqlite+aiosqlite:///file:recipebox_test?mode=memory&cache=shared&uri=true"

test_engine = create_async_engine(
    TEST_DB_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSession = async_sessionmaker(test_engine, expire_on_commit=False, class_=AsyncSession)

# Full-strength PBKDF2 makes every signup take ~0.2s
_auth_mod._ITERATIONS = 1_000


async def override_get_session():
    async with TestSession() as session:
        yield session


# Import app and override BEFORE any test module imports app
from recipebox.api.main import app  # noqa: E402

app.dependency_overrides[get_session] = override_get_session


@asynccontextmanager
async def get_test_session():
    """Context manager for seeding data in tests."""
    async with TestSession() as session:
        yield session


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create tables before each test, drop after."""
    import recipebox.db.user_tables  # noqa: F401
    import recipebox.db.social_tables  # noqa: F401
    import recipebox.db.comment_tables  # noqa: F401

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    # Reset per-process caches between tests
    from recipebox.middleware.cache import invalidate_cache
    from recipebox.db.routines import reset_probe_cache
    from recipebox.services.passwords import reset_token_store
    invalidate_cache()
    reset_probe_cache()
    reset_token_store()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def session():
    async with TestSession() as s:
        yield s


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def signup(client: AsyncClient, username: str, full_name: str | None = None) -> dict:
    """Register a user; returns ``{"id", "token", "headers"}``."""
    resp = await client.post("/api/v1/auth/signup", json={
        "email": f"{username}@example.com",
        "password": "secret123",
        "username": username,
        "full_name": full_name or username.title(),
    })
    assert resp.status_code == 201, resp.text
    data = resp.json()
    token = data["access_token"]
    return {"id": data["user"]["id"], "token": token, "headers": {"Authorization": f"Bearer {token}"}}


async def create_recipe(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {
        "title": "Lemon Garlic Pasta",
        "description": "Weeknight pasta",
        "ingredients": ["200g spaghetti", "2 cloves garlic", "1 lemon"],
        "instructions": ["Boil pasta", "Fry garlic", "Toss with lemon"],
        "cooking_time": 20,
        "difficulty": "easy",
        "category": "dinner",
    }
    payload.update(overrides)
    resp = await client.post("/api/v1/recipes", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest_asyncio.fixture
async def alice(client):
    return await signup(client, "alice", "Alice Baker")


@pytest_asyncio.fixture
async def bob(client):
    return await signup(client, "bob", "Bob Cook")


@pytest_asyncio.fixture
async def recipe(client, alice):
    return await create_recipe(client, alice["headers"])
