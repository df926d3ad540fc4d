"""
Blog post endpoints:
  GET    /blog/public          — every post with its author (no login)
  GET    /blog                 — the requester's own posts
  POST   /blog                 — create a post
  GET    /blog/{id}            — fetch a single post (public)
  PUT    /blog/{id}            — update an owned post
  DELETE /blog/{id}            — delete an owned post
  POST   /blog/{id}/favorite   — favorite a post (idempotent)
  DELETE /blog/{id}/favorite   — remove a favorite
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.auth import current_user_id
from blog_api.database import get_db
from blog_api.lifecycle import PostLifecycle
from blog_api.repository import FavoriteRepository, PostRepository
from blog_api.schemas import Envelope, FavoriteOut, PostInput, PostOut

logger = logging.getLogger(__name__)
router = APIRouter()


def get_lifecycle(db: AsyncSession = Depends(get_db)) -> PostLifecycle:
    return PostLifecycle(PostRepository(db), FavoriteRepository(db))


def _posts(posts) -> list[PostOut]:  # noqa: ANN001
    return [PostOut.model_validate(p) for p in posts]


@router.get("/public", response_model=Envelope, response_model_exclude_unset=True)
async def list_public_posts(lifecycle: PostLifecycle = Depends(get_lifecycle)):
    posts = await lifecycle.list_public()
    return Envelope(message="Success", posts=_posts(posts))


@router.get("", response_model=Envelope, response_model_exclude_unset=True)
async def list_my_posts(
    user_id: Optional[str] = Depends(current_user_id),
    lifecycle: PostLifecycle = Depends(get_lifecycle),
):
    posts = await lifecycle.list_private(user_id)
    return Envelope(message="Success", posts=_posts(posts))


@router.post(
    "",
    response_model=Envelope,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_post(
    body: PostInput,
    user_id: Optional[str] = Depends(current_user_id),
    lifecycle: PostLifecycle = Depends(get_lifecycle),
):
    post = await lifecycle.create(user_id, body)
    return Envelope(message="Success", post=PostOut.model_validate(post))


@router.get("/{post_id}", response_model=Envelope, response_model_exclude_unset=True)
async def get_post(post_id: int, lifecycle: PostLifecycle = Depends(get_lifecycle)):
    post = await lifecycle.read_one(post_id)
    return Envelope(message="Success", post=PostOut.model_validate(post))


@router.put("/{post_id}", response_model=Envelope, response_model_exclude_unset=True)
async def update_post(
    post_id: int,
    body: PostInput,
    user_id: Optional[str] = Depends(current_user_id),
    lifecycle: PostLifecycle = Depends(get_lifecycle),
):
    post = await lifecycle.update(user_id, post_id, body)
    return Envelope(message="Success", post=PostOut.model_validate(post))


@router.delete("/{post_id}", response_model=Envelope, response_model_exclude_unset=True)
async def delete_post(
    post_id: int,
    user_id: Optional[str] = Depends(current_user_id),
    lifecycle: PostLifecycle = Depends(get_lifecycle),
):
    post = await lifecycle.delete(user_id, post_id)
    return Envelope(message="Success", post=PostOut.model_validate(post))


@router.post(
    "/{post_id}/favorite",
    response_model=Envelope,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
async def add_favorite(
    post_id: int,
    response: Response,
    user_id: Optional[str] = Depends(current_user_id),
    lifecycle: PostLifecycle = Depends(get_lifecycle),
):
    favorite, created = await lifecycle.add_favorite(user_id, post_id)
    if not created:
        response.status_code = status.HTTP_200_OK
        return Envelope(message="Already favorited", favorite=FavoriteOut.model_validate(favorite))
    return Envelope(message="Success", favorite=FavoriteOut.model_validate(favorite))


@router.delete("/{post_id}/favorite", response_model=Envelope, response_model_exclude_unset=True)
async def remove_favorite(
    post_id: int,
    user_id: Optional[str] = Depends(current_user_id),
    lifecycle: PostLifecycle = Depends(get_lifecycle),
):
    await lifecycle.remove_favorite(user_id, post_id)
    return Envelope(message="Success")
