"""Error taxonomy shared by services and the HTTP layer.

Services raise these; ``recipebox.api.main`` turns them into the JSON error
envelope ``{"error": <code>, "message": <text>}``.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class RecipeBoxError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    code = "error"
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(RecipeBoxError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required"


class Forbidden(RecipeBoxError):
    status_code = 403
    code = "forbidden"
    default_message = "You are not allowed to do that"


class NotFound(RecipeBoxError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class TargetNotFound(NotFound):
    """The recipe or comment a like points at does not exist."""

    default_message = "Like target not found"


class Conflict(RecipeBoxError):
    status_code = 409
    code = "conflict"
    default_message = "Already exists"


class ValidationError(RecipeBoxError):
    status_code = 422
    code = "validation_error"
    default_message = "Invalid request data"


class PersistenceFailure(RecipeBoxError):
    status_code = 503
    code = "persistence_failure"
    default_message = "The data store is unavailable. Please try again."


@contextmanager
def persistence_guard(action: str) -> Iterator[None]:
    """Translate store errors raised inside the block into PersistenceFailure."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Store error while trying to %s: %s", action, exc)
        raise PersistenceFailure(f"Failed to {action}") from exc
