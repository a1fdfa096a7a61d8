"""Page cache invalidation after social/catalog writes."""
from __future__ import annotations

import logging

from recipebox.middleware.cache import revalidate_path

logger = logging.getLogger(__name__)


def revalidate(*paths: str, kind: str = "page"):
    """Fire-and-forget: a failed invalidation never fails the write that triggered it."""
    for path in paths:
        try:
            revalidate_path(path, kind)
        except Exception:
            logger.warning("Cache invalidation failed for %s", path, exc_info=True)


def revalidate_recipe(recipe_id: str):
    """Recipe detail page (with its comments/stats) plus the listings that show its counts."""
    revalidate(f"/recipes/{recipe_id}", kind="layout")
    revalidate("/recipes", "/recipes/search", "/me/recipes")
