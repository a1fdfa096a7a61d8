"""Tests for comments API — conversation on recipes."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from recipebox.api.main import app
from recipebox.db.engine import get_session
from recipebox.errors import Forbidden, NotFound, PersistenceFailure, Unauthenticated, ValidationError
from recipebox.services.comments import CommentService
from tests.conftest import TestSession, override_get_session


def _comments_url(recipe):
    return f"/api/v1/recipes/{recipe['id']}/comments"


async def _post(client, recipe, user, content):
    return await client.post(_comments_url(recipe), json={"content": content}, headers=user["headers"])


def _failing_session():
    session = MagicMock()
    session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("database is locked")))
    session.get = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("database is locked")))
    return session


@pytest.mark.asyncio
async def test_post_comment(client, alice, bob, recipe):
    resp = await _post(client, recipe, bob, "  Great recipe!  ")
    assert resp.status_code == 201
    data = resp.json()
    assert data["content"] == "Great recipe!"
    assert data["recipe_id"] == recipe["id"]
    assert data["user_id"] == bob["id"]
    assert data["username"] == "bob"
    assert data["full_name"] == "Bob Cook"
    assert data["like_count"] == 0
    assert data["user_has_liked"] is False
    assert data["is_edited"] is False


@pytest.mark.asyncio
async def test_comment_length_limits(client, bob, recipe):
    assert (await _post(client, recipe, bob, "x" * 1000)).status_code == 201

    resp = await _post(client, recipe, bob, "x" * 1001)
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_blank_comment_rejected(client, bob, recipe):
    resp = await _post(client, recipe, bob, "   \n\t ")
    assert resp.status_code == 422

    listing = (await client.get(_comments_url(recipe))).json()
    assert listing["comments"] == []


@pytest.mark.asyncio
async def test_comment_requires_login(client, recipe):
    resp = await client.post(_comments_url(recipe), json={"content": "hi"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_comment_on_unknown_recipe(client, bob):
    resp = await client.post("/api/v1/recipes/missing/comments", json={"content": "hi"}, headers=bob["headers"])
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_list_comments_oldest_first(client, alice, bob, recipe):
    for i, user in enumerate([alice, bob, alice]):
        await _post(client, recipe, user, f"comment {i}")

    data = (await client.get(_comments_url(recipe))).json()
    assert [c["content"] for c in data["comments"]] == ["comment 0", "comment 1", "comment 2"]
    assert data["total"] == 3
    assert data["degraded"] is False


@pytest.mark.asyncio
async def test_list_comments_empty(client, recipe):
    data = (await client.get(_comments_url(recipe))).json()
    assert data == {"comments": [], "degraded": False, "total": 0}


@pytest.mark.asyncio
async def test_edit_comment_marks_edited(client, bob, recipe):
    comment = (await _post(client, recipe, bob, "first draft")).json()

    resp = await client.patch(
        f"/api/v1/comments/{comment['id']}", json={"content": "final version"}, headers=bob["headers"],
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["content"] == "final version"
    assert data["is_edited"] is True
    assert data["updated_at"] > data["created_at"]


@pytest.mark.asyncio
async def test_non_author_cannot_edit(client, alice, bob, recipe):
    comment = (await _post(client, recipe, bob, "original")).json()

    resp = await client.patch(
        f"/api/v1/comments/{comment['id']}", json={"content": "hijacked"}, headers=alice["headers"],
    )
    assert resp.status_code == 403
    assert resp.json()["error"] == "forbidden"

    listing = (await client.get(_comments_url(recipe))).json()
    assert listing["comments"][0]["content"] == "original"
    assert listing["comments"][0]["is_edited"] is False


@pytest.mark.asyncio
async def test_non_author_cannot_delete(client, alice, bob, recipe):
    comment = (await _post(client, recipe, bob, "mine")).json()
    resp = await client.delete(f"/api/v1/comments/{comment['id']}", headers=alice["headers"])
    assert resp.status_code == 403
    assert len((await client.get(_comments_url(recipe))).json()["comments"]) == 1


@pytest.mark.asyncio
async def test_edit_validates_content(client, bob, recipe):
    comment = (await _post(client, recipe, bob, "ok")).json()
    resp = await client.patch(f"/api/v1/comments/{comment['id']}", json={"content": " "}, headers=bob["headers"])
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_delete_comment_removes_its_likes(client, alice, bob, recipe):
    comment = (await _post(client, recipe, bob, "like me")).json()
    await client.post(f"/api/v1/comments/{comment['id']}/like", headers=alice["headers"])

    resp = await client.delete(f"/api/v1/comments/{comment['id']}", headers=bob["headers"])
    assert resp.status_code == 204

    assert (await client.get(_comments_url(recipe))).json()["comments"] == []
    assert (await client.get(f"/api/v1/comments/{comment['id']}/stats")).status_code == 404
    stats = (await client.get(f"/api/v1/recipes/{recipe['id']}/stats")).json()
    assert stats["comment_count"] == 0


@pytest.mark.asyncio
async def test_comment_thread_end_to_end(client, alice, bob, recipe):
    """Post, like, list, edit, delete — counts stay consistent the whole way."""
    c1 = (await _post(client, recipe, alice, "Tip: add chili flakes")).json()
    c2 = (await _post(client, recipe, bob, "Works with penne too")).json()

    await client.post(f"/api/v1/comments/{c1['id']}/like", headers=bob["headers"])
    await client.post(f"/api/v1/comments/{c1['id']}/like", headers=alice["headers"])
    await client.post(f"/api/v1/comments/{c2['id']}/like", headers=alice["headers"])

    listing = (await client.get(_comments_url(recipe), headers=bob["headers"])).json()
    by_id = {c["id"]: c for c in listing["comments"]}
    assert by_id[c1["id"]]["like_count"] == 2
    assert by_id[c1["id"]]["user_has_liked"] is True
    assert by_id[c2["id"]]["like_count"] == 1
    assert by_id[c2["id"]]["user_has_liked"] is False

    await client.patch(f"/api/v1/comments/{c2['id']}", json={"content": "Works with penne and fusilli"},
                       headers=bob["headers"])
    await client.delete(f"/api/v1/comments/{c1['id']}", headers=alice["headers"])

    listing = (await client.get(_comments_url(recipe), headers=bob["headers"])).json()
    assert [c["id"] for c in listing["comments"]] == [c2["id"]]
    assert listing["comments"][0]["is_edited"] is True
    assert listing["comments"][0]["like_count"] == 1

    stats = (await client.get(f"/api/v1/recipes/{recipe['id']}/stats")).json()
    assert stats["comment_count"] == 1


@pytest.mark.asyncio
async def test_degraded_listing_when_store_fails(client, recipe):
    async def broken_session():
        yield _failing_session()

    app.dependency_overrides[get_session] = broken_session
    try:
        resp = await client.get(_comments_url(recipe))
        assert resp.status_code == 200
        assert resp.json() == {"comments": [], "degraded": True, "total": 0}
        assert resp.headers["cache-control"] == "no-store"

        strict = await client.get(_comments_url(recipe) + "?strict=true")
        assert strict.status_code == 503
        assert strict.json()["error"] == "persistence_failure"
    finally:
        app.dependency_overrides[get_session] = override_get_session


# ── Service-level ──


@pytest.mark.asyncio
async def test_service_list_degrades_instead_of_raising():
    service = CommentService(_failing_session())
    result = await service.list_comments("any-recipe")
    assert result.degraded is True
    assert result.comments == []

    with pytest.raises(PersistenceFailure):
        await service.list_comments_strict("any-recipe")


@pytest.mark.asyncio
async def test_service_checks_before_writing(alice, bob, recipe):
    async with TestSession() as session:
        service = CommentService(session)
        comment = await service.create_comment(recipe["id"], bob["id"], "hello")

        with pytest.raises(Unauthenticated):
            await service.update_comment(comment.id, None, "x")
        with pytest.raises(NotFound):
            await service.update_comment("missing", bob["id"], "x")
        with pytest.raises(Forbidden):
            await service.delete_comment(comment.id, alice["id"])
        with pytest.raises(ValidationError):
            await service.update_comment(comment.id, bob["id"], "y" * 1001)

        listing = await service.list_comments(recipe["id"])
        assert [c.content for c in listing.comments] == ["hello"]


@pytest.mark.asyncio
async def test_comment_author_placeholders(bob, recipe):
    """Comments whose author profile is gone show placeholder names."""
    from sqlalchemy import delete
    from recipebox.db.user_tables import ProfileRow

    async with TestSession() as session:
        await CommentService(session).create_comment(recipe["id"], bob["id"], "ghost")
        await session.execute(delete(ProfileRow).where(ProfileRow.id == bob["id"]))
        await session.commit()

    async with TestSession() as session:
        comments = await CommentService(session).list_comments_strict(recipe["id"])
    assert comments[0].username == "Unknown"
    assert comments[0].full_name == "Unknown User"
