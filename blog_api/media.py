"""
Cover image upload and optional binding to a post.

The object is stored first. Binding it to a post is a second step with its
own ownership re-check; if that step fails the object stays in storage and
the caller gets a ``PartialUploadFailure`` that still carries the URL.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from blog_api.access import Operation, can_access
from blog_api.clients.storage_client import ObjectStorage
from blog_api.errors import (
    AuthenticationRequired,
    NotFoundOrForbidden,
    PartialUploadFailure,
    UpstreamFailure,
    ValidationFailed,
)
from blog_api.models import Post
from blog_api.repository import PostRepository
from blog_api.telemetry import UPLOADS_TOTAL

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    public_url: str
    post: Optional[Post] = None


def build_storage_key(filename: Optional[str]) -> str:
    """Random key keeping the original extension, lower-cased: ``<uuid>[.ext]``."""
    key = str(uuid.uuid4())
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
        if ext:
            return f"{key}.{ext}"
    return key


class MediaAttachment:
    def __init__(self, storage: ObjectStorage, posts: PostRepository, bucket: str) -> None:
        self.storage = storage
        self.posts = posts
        self.bucket = bucket

    async def upload(
        self,
        file_bytes: Optional[bytes],
        content_type: Optional[str],
        filename: Optional[str],
        post_id: Optional[int] = None,
        requester_id: Optional[str] = None,
    ) -> UploadResult:
        if file_bytes is None:
            raise ValidationFailed({"file": "No file provided"}, "No file provided")

        key = build_storage_key(filename)
        try:
            path = await run_in_threadpool(
                self.storage.upload, self.bucket, key, file_bytes, content_type, False
            )
            public_url = self.storage.get_public_url(self.bucket, path)
        except Exception as exc:
            UPLOADS_TOTAL.labels(outcome="failed").inc()
            logger.exception("Object upload failed for key %s", key)
            raise UpstreamFailure("Upload failed", err=exc) from exc

        if post_id is None:
            UPLOADS_TOTAL.labels(outcome="stored").inc()
            logger.info("Stored upload %s", key)
            return UploadResult(public_url=public_url)

        post = await self._bind(public_url, post_id, requester_id)
        UPLOADS_TOTAL.labels(outcome="bound").inc()
        logger.info("Stored upload %s and attached it to post %s", key, post_id)
        return UploadResult(public_url=public_url, post=post)

    async def _bind(self, public_url: str, post_id: int, requester_id: Optional[str]) -> Post:
        if not requester_id:
            self._bind_failed(post_id, "no identity")
            raise PartialUploadFailure(
                public_url,
                AuthenticationRequired(),
                "Upload succeeded but authentication is required to attach it",
            )

        try:
            post = await self.posts.find_by_id_and_author(post_id, requester_id)
            if post is None or not can_access(requester_id, post, Operation.MODIFY):
                self._bind_failed(post_id, "not found or not owned")
                raise PartialUploadFailure(
                    public_url,
                    NotFoundOrForbidden(),
                    "Upload succeeded but post not found or access denied",
                )
            updated = await self.posts.update(post_id, image_url=public_url)
        except SQLAlchemyError as exc:
            self._bind_failed(post_id, "database error")
            raise PartialUploadFailure(
                public_url,
                UpstreamFailure(err=exc),
                "Upload succeeded but DB update failed",
            ) from exc

        if updated is None:
            self._bind_failed(post_id, "post vanished")
            raise PartialUploadFailure(
                public_url,
                NotFoundOrForbidden(),
                "Upload succeeded but post not found or access denied",
            )
        return updated

    def _bind_failed(self, post_id: int, reason: str) -> None:
        UPLOADS_TOTAL.labels(outcome="bind_failed").inc()
        logger.warning("Upload stored but not attached to post %s: %s", post_id, reason)
