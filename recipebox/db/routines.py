"""Stored routines for the social tables (PostgreSQL only).

Each routine does its work in a single statement/transaction on the server:

* ``toggle_recipe_like(recipe_uuid, user_uuid)``  -> (liked, like_count)
* ``toggle_comment_like(comment_uuid, user_uuid)`` -> (liked, like_count)
* ``get_recipe_stats(recipe_uuid, viewer_uuid)``   -> (like_count, comment_count, user_has_liked)

Services only call them when ``routines_available`` says so; otherwise they
fall back to the multi-step sequences in ``recipebox.services``.
"""
from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession

from config.settings import settings

logger = logging.getLogger(__name__)

ROUTINE_NAMES = ("toggle_recipe_like", "toggle_comment_like", "get_recipe_stats")

_TOGGLE_TEMPLATE = """
CREATE OR REPLACE FUNCTION {name}(target_uuid varchar, user_uuid varchar)
RETURNS TABLE(liked boolean, like_count integer)
LANGUAGE plpgsql AS $$
BEGIN
    DELETE FROM {table} WHERE {column} = target_uuid AND user_id = user_uuid;
    IF FOUND THEN
        liked := false;
    ELSE
        INSERT INTO {table} (id, {column}, user_id, created_at)
        VALUES (gen_random_uuid()::varchar, target_uuid, user_uuid, timezone('utc', now()))
        ON CONFLICT ({column}, user_id) DO NOTHING;
        liked := true;
    END IF;
    SELECT count(*) INTO like_count FROM {table} WHERE {column} = target_uuid;
    RETURN NEXT;
END;
$$;
"""

ROUTINE_DDL = (
    _TOGGLE_TEMPLATE.format(name="toggle_recipe_like", table="recipe_likes", column="recipe_id"),
    _TOGGLE_TEMPLATE.format(name="toggle_comment_like", table="comment_likes", column="comment_id"),
    """
CREATE OR REPLACE FUNCTION get_recipe_stats(recipe_uuid varchar, viewer_uuid varchar)
RETURNS TABLE(like_count integer, comment_count integer, user_has_liked boolean)
LANGUAGE sql STABLE AS $$
    SELECT
        (SELECT count(*) FROM recipe_likes l WHERE l.recipe_id = recipe_uuid)::integer,
        (SELECT count(*) FROM recipe_comments c WHERE c.recipe_id = recipe_uuid)::integer,
        COALESCE(viewer_uuid IS NOT NULL AND EXISTS (
            SELECT 1 FROM recipe_likes l
            WHERE l.recipe_id = recipe_uuid AND l.user_id = viewer_uuid
        ), false);
$$;
""",
)

DROP_DDL = tuple(
    f"DROP FUNCTION IF EXISTS {name}(varchar, varchar)" for name in ROUTINE_NAMES
)

# Probe results keyed by database URL
_probe_cache: dict[str, bool] = {}


async def install_routines(conn: AsyncConnection) -> bool:
    """Create or replace the routines. No-op (returns False) off PostgreSQL."""
    if conn.dialect.name != "postgresql":
        return False
    for ddl in ROUTINE_DDL:
        await conn.execute(text(ddl))
    logger.info("Installed social stored routines")
    return True


async def routines_available(session: AsyncSession) -> bool:
    """Capability probe: should the social services call the stored routines?"""
    mode = settings.SOCIAL_ROUTINES
    if mode == "on":
        return True
    if mode == "off":
        return False

    bind = session.get_bind()
    if bind.dialect.name != "postgresql":
        return False

    key = str(bind.url)
    if key in _probe_cache:
        return _probe_cache[key]

    try:
        result = await session.execute(
            text("SELECT count(DISTINCT proname) FROM pg_proc WHERE proname = ANY(:names)"),
            {"names": list(ROUTINE_NAMES)},
        )
        available = (result.scalar() or 0) == len(ROUTINE_NAMES)
    except SQLAlchemyError:
        logger.warning("Stored routine probe failed — using manual sequences", exc_info=True)
        await session.rollback()
        return False

    if not available:
        logger.warning("Social stored routines not installed — using manual sequences")
    _probe_cache[key] = available
    return available


def reset_probe_cache():
    """Forget probe results (tests, or after installing routines)."""
    _probe_cache.clear()
