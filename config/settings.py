"""App settings — loaded from environment."""
from __future__ import annotations

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # API
    API_HOST = os.getenv("API_HOST", "0.0.0.0")
    API_PORT = int(os.getenv("API_PORT", "8000"))

    # Deployment environment; reset tokens are only echoed back outside "production"
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///recipebox.db")

    # Auth
    JWT_SECRET = os.getenv("JWT_SECRET", "recipebox-dev-secret-change-in-prod")

    # CORS origins (comma-separated, or * for dev)
    CORS_ORIGINS = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")
    ]

    # Social features: "auto" probes the database for the stored routines,
    # "on" always calls them, "off" always runs the multi-step sequences.
    SOCIAL_ROUTINES = os.getenv("SOCIAL_ROUTINES", "auto").lower()

    # Comments
    COMMENT_MAX_LENGTH = int(os.getenv("COMMENT_MAX_LENGTH", "1000"))

    # Observability
    SENTRY_DSN = os.getenv("SENTRY_DSN", "")
    SENTRY_ENVIRONMENT = os.getenv("SENTRY_ENVIRONMENT", "development")
    SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1"))

    # Logging
    LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
