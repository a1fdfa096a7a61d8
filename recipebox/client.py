"""Async HTTP client for the RecipeBox API, plus optimistic like state for UIs.

``OptimisticLike`` is what a like button holds: clicking flips the state
immediately, then the server's answer either replaces it or, on failure,
the previous state comes back and the error propagates to the caller.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Optional

import httpx

from recipebox.models import Comment, CommentsResult, LikeToggleResponse, RecipeStats, RecipeWithStats

logger = logging.getLogger(__name__)

USER_AGENT = "RecipeBox-Client/0.1"


class RecipeBoxAPIError(Exception):
    """Non-2xx response carrying the API's error envelope."""

    def __init__(self, status: int, error: str, message: str):
        self.status = status
        self.error = error
        self.message = message
        super().__init__(f"{status} {error}: {message}")


class RecipeBoxClient:
    """Thin wrapper over the REST API.

    Pass ``transport`` (e.g. ``httpx.ASGITransport(app=app)``) to talk to an
    in-process app.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10,
    ):
        headers = {"User-Agent": USER_AGENT}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.AsyncClient(base_url=base_url, headers=headers, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "RecipeBoxClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def set_token(self, token: Optional[str]) -> None:
        if token:
            self._http.headers["Authorization"] = f"Bearer {token}"
        else:
            self._http.headers.pop("Authorization", None)

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        resp = await self._http.request(method, path, **kwargs)
        if resp.is_success:
            return resp.json() if resp.content else None
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        raise RecipeBoxAPIError(
            resp.status_code,
            str(body.get("error", "error")),
            str(body.get("message", resp.reason_phrase)),
        )

    # ── Auth ──

    async def login(self, email: str, password: str) -> dict:
        data = await self._request("POST", "/api/v1/auth/login", json={"email": email, "password": password})
        self.set_token(data["access_token"])
        return data

    # ── Recipes ──

    async def get_recipe(self, recipe_id: str) -> RecipeWithStats:
        return RecipeWithStats(**await self._request("GET", f"/api/v1/recipes/{recipe_id}"))

    async def list_recipes(self, category: Optional[str] = None, limit: int = 20, offset: int = 0) -> list[RecipeWithStats]:
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if category:
            params["category"] = category
        data = await self._request("GET", "/api/v1/recipes", params=params)
        return [RecipeWithStats(**r) for r in data["data"]]

    # ── Social ──

    async def toggle_recipe_like(self, recipe_id: str) -> LikeToggleResponse:
        return LikeToggleResponse(**await self._request("POST", f"/api/v1/recipes/{recipe_id}/like"))

    async def toggle_comment_like(self, comment_id: str) -> LikeToggleResponse:
        return LikeToggleResponse(**await self._request("POST", f"/api/v1/comments/{comment_id}/like"))

    async def recipe_stats(self, recipe_id: str) -> RecipeStats:
        return RecipeStats(**await self._request("GET", f"/api/v1/recipes/{recipe_id}/stats"))

    async def list_comments(self, recipe_id: str) -> CommentsResult:
        data = await self._request("GET", f"/api/v1/recipes/{recipe_id}/comments")
        return CommentsResult(comments=data["comments"], degraded=data.get("degraded", False))

    async def post_comment(self, recipe_id: str, content: str) -> Comment:
        return Comment(**await self._request("POST", f"/api/v1/recipes/{recipe_id}/comments", json={"content": content}))

    async def edit_comment(self, comment_id: str, content: str) -> Comment:
        return Comment(**await self._request("PATCH", f"/api/v1/comments/{comment_id}", json={"content": content}))

    async def delete_comment(self, comment_id: str) -> None:
        await self._request("DELETE", f"/api/v1/comments/{comment_id}")


@dataclass(frozen=True)
class LikeState:
    liked: bool
    like_count: int

    def flipped(self) -> "LikeState":
        return replace(
            self,
            liked=not self.liked,
            like_count=max(0, self.like_count + (-1 if self.liked else 1)),
        )


class OptimisticLike:
    """Locally displayed like state for one recipe or comment."""

    def __init__(
        self,
        state: LikeState,
        send: Callable[[], Awaitable[LikeToggleResponse]],
        on_change: Optional[Callable[[LikeState], None]] = None,
    ):
        self.state = state
        self._send = send
        self._on_change = on_change
        self._pending = False

    @classmethod
    def for_recipe(cls, client: RecipeBoxClient, recipe: RecipeWithStats, **kwargs) -> "OptimisticLike":
        state = LikeState(liked=recipe.user_has_liked, like_count=recipe.like_count)
        return cls(state, lambda: client.toggle_recipe_like(recipe.id), **kwargs)

    @classmethod
    def for_comment(cls, client: RecipeBoxClient, comment: Comment, **kwargs) -> "OptimisticLike":
        state = LikeState(liked=comment.user_has_liked, like_count=comment.like_count)
        return cls(state, lambda: client.toggle_comment_like(comment.id), **kwargs)

    def _set(self, state: LikeState) -> None:
        self.state = state
        if self._on_change:
            self._on_change(state)

    async def toggle(self) -> LikeState:
        """Flip now, then settle on the server's answer. Restores the prior state and re-raises on failure.

        A toggle issued while another is still in flight is ignored and returns the current state.
        """
        if self._pending:
            return self.state
        self._pending = True
        previous = self.state
        self._set(previous.flipped())
        try:
            result = await self._send()
        except Exception:
            logger.warning(f"Like toggle failed; restoring liked={previous.liked} count={previous.like_count}")
            self._set(previous)
            raise
        finally:
            self._pending = False
        self._set(LikeState(liked=result.liked, like_count=result.like_count))
        return self.state
