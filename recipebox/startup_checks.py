"""Startup validation — catch misconfigurations before the app serves traffic."""
from __future__ import annotations

import logging
import sys

from config.settings import settings

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "recipebox-dev-secret-change-in-prod"
ROUTINE_MODES = ("auto", "on", "off")


def validate_settings() -> list[str]:
    """Validate configuration. Returns list of warnings (empty = all good).

    Raises SystemExit for critical misconfigurations in production.
    """
    warnings: list[str] = []
    is_prod = settings.DATABASE_URL and "sqlite" not in settings.DATABASE_URL

    # Critical: JWT secret must be changed in production
    if is_prod and settings.JWT_SECRET == DEFAULT_JWT_SECRET:
        logger.critical("JWT_SECRET is still the default! Set a real secret for production.")
        sys.exit(1)

    if is_prod and "*" in settings.CORS_ORIGINS:
        warnings.append("CORS_ORIGINS is set to * — restrict in production")

    if settings.SOCIAL_ROUTINES not in ROUTINE_MODES:
        warnings.append(
            f"SOCIAL_ROUTINES={settings.SOCIAL_ROUTINES!r} is not one of {', '.join(ROUTINE_MODES)}; "
            "treating it as auto"
        )
    elif settings.SOCIAL_ROUTINES == "on" and not is_prod:
        warnings.append("SOCIAL_ROUTINES=on but the database is not PostgreSQL — like toggles will fail")

    if settings.COMMENT_MAX_LENGTH != 1000:
        warnings.append(
            f"COMMENT_MAX_LENGTH={settings.COMMENT_MAX_LENGTH} differs from the database CHECK (1000 chars)"
        )

    for w in warnings:
        logger.warning("⚠️  %s", w)

    if not warnings:
        logger.info("✅ All startup checks passed")

    return warnings
