"""
Async client for the blog API, used by front-ends and scripts.

``PostListLoader`` guards against out-of-order responses: identity often
resolves after the first render, so a second list load can start while
the first is still in flight. Only the most recently issued load may
publish its result; older ones are dropped when they finish.
"""
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from blog_api.config import Settings

logger = logging.getLogger(__name__)


class BlogClient:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.settings = settings
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        self._http = httpx.AsyncClient(
            base_url=self.settings.api_base_url,
            timeout=self.settings.api_timeout_seconds,
            transport=self._transport,
        )

    async def stop(self) -> None:
        if self._http:
            await self._http.aclose()

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RuntimeError("BlogClient not started, call start() first")
        return self._http

    @staticmethod
    def _auth(token: Optional[str]) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def list_public_posts(self) -> list[dict[str, Any]]:
        resp = await self._client().get("/blog/public")
        resp.raise_for_status()
        return resp.json().get("posts") or []

    async def list_my_posts(self, token: Optional[str]) -> list[dict[str, Any]]:
        """The requester's posts; an unauthenticated caller simply has none."""
        resp = await self._client().get("/blog", headers=self._auth(token))
        if resp.status_code == 401:
            return []
        resp.raise_for_status()
        return resp.json().get("posts") or []

    async def get_post(self, post_id: int) -> dict[str, Any]:
        resp = await self._client().get(f"/blog/{post_id}")
        resp.raise_for_status()
        return resp.json()["post"]


class PostListLoader:
    """Keeps ``posts`` in sync with the latest issued list request."""

    def __init__(
        self,
        fetch: Callable[[Optional[str]], Awaitable[list[dict[str, Any]]]],
        on_result: Optional[Callable[[list[dict[str, Any]]], None]] = None,
    ) -> None:
        self._fetch = fetch
        self._on_result = on_result
        self._latest = 0
        self.token: Optional[str] = None
        self.posts: list[dict[str, Any]] = []
        self.error: Optional[Exception] = None

    @property
    def latest_sequence(self) -> int:
        return self._latest

    async def load(self) -> bool:
        """Fetch and publish; returns False when a newer load superseded this one."""
        self._latest += 1
        sequence = self._latest

        try:
            posts = await self._fetch(self.token)
        except Exception as exc:
            if sequence != self._latest:
                logger.debug("Dropping failure of stale list load #%d", sequence)
                return False
            logger.warning("List load #%d failed: %s", sequence, exc)
            self.error = exc
            return True

        if sequence != self._latest:
            logger.debug("Dropping stale list load #%d (latest is #%d)", sequence, self._latest)
            return False

        self.posts = posts
        self.error = None
        if self._on_result:
            self._on_result(posts)
        return True

    async def on_identity_changed(self, token: Optional[str]) -> bool:
        self.token = token
        return await self.load()
