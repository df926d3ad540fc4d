"""
Post lifecycle: list / create / read / update / delete / favorite.

Framework-free orchestration of validation, identity, ownership re-checks
and repository calls. Every method raises a ``BlogError`` subclass on a
rule violation; repository errors propagate untouched.

  list_public     — no identity, every post with its author, ascending date
  list_private    — identity required, only the requester's posts
  create          — identity + valid input; author is always the requester
  read_one        — public by id (individual posts are linkable)
  update / delete — identity + ownership re-check on (id, author)
  favorites       — idempotent add, no-op-safe remove
"""
import logging
from typing import Optional, Sequence

from opentelemetry import trace
from sqlalchemy.exc import IntegrityError

from blog_api.access import Operation, can_access
from blog_api.errors import (
    AuthenticationRequired,
    NotFound,
    NotFoundOrForbidden,
    ValidationFailed,
)
from blog_api.models import Favorite, Post
from blog_api.repository import FavoriteRepository, PostRepository
from blog_api.schemas import PostInput
from blog_api.telemetry import POSTS_CREATED_TOTAL, POSTS_DELETED_TOTAL
from blog_api.validation import validate_post_input

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _require_identity(requester_id: Optional[str]) -> str:
    if not requester_id:
        raise AuthenticationRequired()
    return requester_id


def _require_valid(body: PostInput) -> None:
    errors = validate_post_input(body)
    if errors:
        raise ValidationFailed(errors)


class PostLifecycle:
    def __init__(self, posts: PostRepository, favorites: FavoriteRepository) -> None:
        self.posts = posts
        self.favorites = favorites

    async def _owned_post(self, requester_id: str, post_id: int, operation: Operation) -> Post:
        post = await self.posts.find_by_id_and_author(post_id, requester_id)
        if post is None or not can_access(requester_id, post, operation):
            raise NotFoundOrForbidden()
        return post

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_public(self) -> Sequence[Post]:
        return await self.posts.find_all_ordered_by_date()

    async def list_private(self, requester_id: Optional[str]) -> Sequence[Post]:
        user_id = _require_identity(requester_id)
        return await self.posts.find_all_by_author(user_id)

    async def read_one(self, post_id: int) -> Post:
        post = await self.posts.find_by_id(post_id)
        if post is None:
            raise NotFound()
        return post

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(self, requester_id: Optional[str], body: PostInput) -> Post:
        user_id = _require_identity(requester_id)
        _require_valid(body)

        with tracer.start_as_current_span("create_post") as span:
            post = await self.posts.create(
                title=body.title,
                description=body.description,
                author_id=user_id,
                image_url=body.image_url or None,
            )
            span.set_attribute("post.id", post.id)

        POSTS_CREATED_TOTAL.inc()
        logger.info("Post created: %s by user %s", post.id, user_id)
        return post

    async def update(self, requester_id: Optional[str], post_id: int, body: PostInput) -> Post:
        user_id = _require_identity(requester_id)
        _require_valid(body)

        with tracer.start_as_current_span("update_post") as span:
            span.set_attribute("post.id", post_id)
            await self._owned_post(user_id, post_id, Operation.MODIFY)

            fields = {"title": body.title, "description": body.description}
            # A missing or empty image URL keeps the current cover
            if body.image_url:
                fields["image_url"] = body.image_url
            post = await self.posts.update(post_id, **fields)

        if post is None:
            # Deleted between the ownership check and the write
            raise NotFoundOrForbidden()
        logger.info("Post updated: %s by user %s", post_id, user_id)
        return post

    async def delete(self, requester_id: Optional[str], post_id: int) -> Post:
        user_id = _require_identity(requester_id)

        with tracer.start_as_current_span("delete_post") as span:
            span.set_attribute("post.id", post_id)
            post = await self._owned_post(user_id, post_id, Operation.DELETE)
            await self.posts.delete(post_id)

        POSTS_DELETED_TOTAL.inc()
        logger.info("Post deleted: %s by user %s", post_id, user_id)
        return post

    # ── Favorites ─────────────────────────────────────────────────────────

    async def add_favorite(
        self, requester_id: Optional[str], post_id: int
    ) -> tuple[Favorite, bool]:
        """Return the favorite and whether it was created by this call."""
        user_id = _require_identity(requester_id)
        if await self.posts.find_by_id(post_id) is None:
            raise NotFound()

        existing = await self.favorites.find(user_id, post_id)
        if existing is not None:
            return existing, False

        try:
            favorite = await self.favorites.create(user_id, post_id)
        except IntegrityError:
            # A concurrent request inserted the same pair after the check above
            existing = await self.favorites.find(user_id, post_id)
            if existing is None:
                raise
            return existing, False

        logger.info("User %s favorited post %s", user_id, post_id)
        return favorite, True

    async def remove_favorite(self, requester_id: Optional[str], post_id: int) -> int:
        user_id = _require_identity(requester_id)
        removed = await self.favorites.delete_matching(user_id, post_id)
        if removed:
            logger.info("User %s unfavorited post %s", user_id, post_id)
        return removed
