"""Tests for the recipe catalog API."""
from __future__ import annotations

import pytest

from recipebox.db.tables import RecipeRow
from tests.conftest import TestSession, create_recipe


@pytest.mark.asyncio
async def test_create_recipe(client, alice):
    recipe = await create_recipe(client, alice["headers"], ingredients="2 eggs\n\n 1 cup flour \n")
    assert recipe["title"] == "Lemon Garlic Pasta"
    assert recipe["user_id"] == alice["id"]
    assert recipe["ingredients"] == ["2 eggs", "1 cup flour"]
    assert recipe["author"] == {"username": "alice", "full_name": "Alice Baker"}
    assert recipe["like_count"] == 0
    assert recipe["comment_count"] == 0
    assert recipe["user_has_liked"] is False


@pytest.mark.asyncio
async def test_create_recipe_requires_login(client):
    resp = await client.post("/api/v1/recipes", json={
        "title": "x", "ingredients": ["a"], "instructions": ["b"],
    })
    assert resp.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides", [
    {"title": "   "},
    {"ingredients": []},
    {"instructions": "\n \n"},
    {"cooking_time": -5},
    {"difficulty": "impossible"},
])
async def test_create_recipe_validation(client, alice, overrides):
    payload = {"title": "Soup", "ingredients": ["water"], "instructions": ["boil"], **overrides}
    resp = await client.post("/api/v1/recipes", json=payload, headers=alice["headers"])
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_get_recipe(client, recipe):
    resp = await client.get(f"/api/v1/recipes/{recipe['id']}")
    assert resp.status_code == 200
    assert resp.json()["instructions"] == ["Boil pasta", "Fry garlic", "Toss with lemon"]


@pytest.mark.asyncio
async def test_get_unknown_recipe(client):
    resp = await client.get("/api/v1/recipes/nope")
    assert resp.status_code == 404
    assert resp.json() == {"error": "not_found", "message": "Recipe not found"}


@pytest.mark.asyncio
async def test_legacy_newline_lists_are_readable(client, alice):
    async with TestSession() as session:
        session.add(RecipeRow(
            id="legacy-1", user_id=alice["id"], title="Old Toast",
            ingredients="bread\nbutter\n", instructions="Toast it",
        ))
        await session.commit()

    data = (await client.get("/api/v1/recipes/legacy-1")).json()
    assert data["ingredients"] == ["bread", "butter"]
    assert data["instructions"] == ["Toast it"]


@pytest.mark.asyncio
async def test_update_recipe(client, alice, recipe):
    resp = await client.patch(
        f"/api/v1/recipes/{recipe['id']}",
        json={"title": "Lemon Pasta", "difficulty": "medium"},
        headers=alice["headers"],
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["title"] == "Lemon Pasta"
    assert data["difficulty"] == "medium"
    assert data["cooking_time"] == 20


@pytest.mark.asyncio
async def test_update_recipe_non_owner(client, bob, recipe):
    resp = await client.patch(f"/api/v1/recipes/{recipe['id']}", json={"title": "Mine now"}, headers=bob["headers"])
    assert resp.status_code == 403
    assert (await client.get(f"/api/v1/recipes/{recipe['id']}")).json()["title"] == "Lemon Garlic Pasta"


@pytest.mark.asyncio
async def test_update_recipe_rejects_blank_title(client, alice, recipe):
    resp = await client.patch(f"/api/v1/recipes/{recipe['id']}", json={"title": " "}, headers=alice["headers"])
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_delete_recipe_cascades(client, alice, bob, recipe):
    await client.post(f"/api/v1/recipes/{recipe['id']}/like", headers=bob["headers"])
    comment = (await client.post(
        f"/api/v1/recipes/{recipe['id']}/comments", json={"content": "yum"}, headers=bob["headers"],
    )).json()
    await client.post(f"/api/v1/comments/{comment['id']}/like", headers=alice["headers"])

    assert (await client.delete(f"/api/v1/recipes/{recipe['id']}", headers=bob["headers"])).status_code == 403
    assert (await client.delete(f"/api/v1/recipes/{recipe['id']}", headers=alice["headers"])).status_code == 204

    assert (await client.get(f"/api/v1/recipes/{recipe['id']}")).status_code == 404
    assert (await client.get(f"/api/v1/comments/{comment['id']}/stats")).status_code == 404


@pytest.mark.asyncio
async def test_list_recipes_newest_first_with_stats(client, alice, bob):
    first = await create_recipe(client, alice["headers"], title="First")
    second = await create_recipe(client, alice["headers"], title="Second", category="dessert")
    await client.post(f"/api/v1/recipes/{first['id']}/like", headers=bob["headers"])

    body = (await client.get("/api/v1/recipes", headers=bob["headers"])).json()
    assert [r["id"] for r in body["data"]] == [second["id"], first["id"]]
    assert body["data"][1]["like_count"] == 1
    assert body["data"][1]["user_has_liked"] is True
    assert body["pagination"] == {"total": 2, "limit": 20, "offset": 0, "has_more": False}

    desserts = (await client.get("/api/v1/recipes?category=dessert")).json()
    assert [r["title"] for r in desserts["data"]] == ["Second"]


@pytest.mark.asyncio
async def test_listing_reflects_new_likes(client, alice, bob, recipe):
    """Cached listings are revalidated when a like changes the count."""
    url = "/api/v1/recipes"
    assert (await client.get(url)).json()["data"][0]["like_count"] == 0
    assert (await client.get(url)).headers["x-cache"] == "HIT"

    await client.post(f"/api/v1/recipes/{recipe['id']}/like", headers=bob["headers"])

    resp = await client.get(url)
    assert resp.headers["x-cache"] == "MISS"
    assert resp.json()["data"][0]["like_count"] == 1


@pytest.mark.asyncio
async def test_search_recipes(client, alice):
    await create_recipe(client, alice["headers"], title="Mango Sorbet", ingredients=["mango", "sugar"])
    await create_recipe(client, alice["headers"], title="Chili", description="100% beef")
    await create_recipe(client, alice["headers"], title="Salad", ingredients=["MANGO slices", "greens"])

    titles = {r["title"] for r in (await client.get("/api/v1/recipes/search?q=mango")).json()["data"]}
    assert titles == {"Mango Sorbet", "Salad"}

    # LIKE wildcards are matched literally
    literal = (await client.get("/api/v1/recipes/search", params={"q": "100%"})).json()
    assert [r["title"] for r in literal["data"]] == ["Chili"]
    wildcard = (await client.get("/api/v1/recipes/search", params={"q": "_"})).json()
    assert wildcard["data"] == []


@pytest.mark.asyncio
async def test_search_matches_non_ascii_ingredients(client, alice):
    await create_recipe(client, alice["headers"], title="Salsa Verde", ingredients=["2 jalapeño peppers", "tomatillos"])
    await create_recipe(client, alice["headers"], title="Plain Toast", ingredients=["bread"])

    data = (await client.get("/api/v1/recipes/search", params={"q": "jalapeño"})).json()
    assert data["pagination"]["total"] == 1
    assert data["data"][0]["ingredients"][0] == "2 jalapeño peppers"


@pytest.mark.asyncio
async def test_categories(client):
    data = (await client.get("/api/v1/recipes/categories")).json()["data"]
    assert "main-course" in data
    assert len(data) == 13


@pytest.mark.asyncio
async def test_my_recipes(client, alice, bob, recipe):
    await create_recipe(client, bob["headers"], title="Bob's Stew")

    mine = (await client.get("/api/v1/me/recipes", headers=alice["headers"])).json()
    assert [r["id"] for r in mine["data"]] == [recipe["id"]]

    theirs = (await client.get(f"/api/v1/users/{bob['id']}/recipes")).json()
    assert [r["title"] for r in theirs["data"]] == ["Bob's Stew"]
