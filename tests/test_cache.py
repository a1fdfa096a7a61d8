"""Tests for the response cache and path revalidation."""
import time
from unittest.mock import patch

import pytest

from recipebox.middleware.cache import (
    cache_key, cache_stats, get_cached, invalidate_cache, logical_path, revalidate_path, set_cached,
)
from recipebox.services.invalidation import revalidate, revalidate_recipe


def test_cache_set_get():
    invalidate_cache()
    set_cached("test1", "/recipes", {"data": [1, 2, 3]}, ttl=10)
    assert get_cached("test1") == {"data": [1, 2, 3]}


def test_cache_miss():
    invalidate_cache()
    assert get_cached("nonexistent") is None


def test_cache_expiry():
    invalidate_cache()
    set_cached("expire_me", "/recipes", "value", ttl=0)
    time.sleep(0.01)
    assert get_cached("expire_me") is None


def test_cache_key_generation():
    k1 = cache_key("/api/v1/recipes", "limit=20")
    assert k1 == cache_key("/api/v1/recipes", "limit=20")
    assert k1 != cache_key("/api/v1/recipes", "limit=50")
    assert k1 != cache_key("/api/v1/recipes", "limit=20", "Bearer abc")


def test_logical_path():
    assert logical_path("/api/v1/recipes/abc/") == "/recipes/abc"
    assert logical_path("/api/v1") == "/"
    assert logical_path("/me/recipes") == "/me/recipes"


def test_cache_stats():
    invalidate_cache()
    set_cached("x", "/recipes", 1, ttl=60)
    set_cached("y", "/recipes", 2, ttl=0)
    time.sleep(0.01)
    stats = cache_stats()
    assert stats["total_entries"] == 2
    assert stats["valid_entries"] == 1
    assert stats["expired_entries"] == 1


def test_revalidate_page_is_exact():
    invalidate_cache()
    set_cached("list", "/api/v1/recipes", 1, ttl=60)
    set_cached("detail", "/api/v1/recipes/r1", 2, ttl=60)

    assert revalidate_path("/recipes", "page") == 1
    assert get_cached("list") is None
    assert get_cached("detail") == 2


def test_revalidate_layout_includes_children():
    invalidate_cache()
    set_cached("detail", "/api/v1/recipes/r1", 1, ttl=60)
    set_cached("comments", "/api/v1/recipes/r1/comments", 2, ttl=60)
    set_cached("other", "/api/v1/recipes/r10", 3, ttl=60)

    assert revalidate_path("/recipes/r1", "layout") == 2
    assert get_cached("other") == 3


def test_revalidate_unknown_kind():
    with pytest.raises(ValueError):
        revalidate_path("/recipes", "everything")


def test_revalidate_recipe_touches_listing_and_detail():
    invalidate_cache()
    set_cached("list", "/api/v1/recipes", 1, ttl=60)
    set_cached("stats", "/api/v1/recipes/r1/stats", 2, ttl=60)
    set_cached("unrelated", "/api/v1/recipes/r2", 3, ttl=60)

    revalidate_recipe("r1")

    assert get_cached("list") is None
    assert get_cached("stats") is None
    assert get_cached("unrelated") == 3


def test_revalidate_never_raises():
    with patch("recipebox.services.invalidation.revalidate_path", side_effect=RuntimeError("boom")):
        revalidate("/recipes")


@pytest.mark.asyncio
async def test_cache_keyed_by_viewer(client, alice, bob, recipe):
    await client.post(f"/api/v1/recipes/{recipe['id']}/like", headers=alice["headers"])

    url = f"/api/v1/recipes/{recipe['id']}"
    assert (await client.get(url, headers=alice["headers"])).json()["user_has_liked"] is True
    bob_view = await client.get(url, headers=bob["headers"])
    assert bob_view.headers["x-cache"] == "MISS"
    assert bob_view.json()["user_has_liked"] is False
