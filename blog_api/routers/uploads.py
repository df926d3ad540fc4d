"""
Media upload endpoint:
  POST /upload — multipart form with ``file`` and an optional ``post_id``
  GET  /upload — usage hint
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from blog_api.auth import current_user_id, get_settings
from blog_api.config import Settings
from blog_api.database import get_db
from blog_api.errors import AuthenticationRequired, ValidationFailed
from blog_api.media import MediaAttachment
from blog_api.repository import PostRepository
from blog_api.schemas import Envelope, PostOut

logger = logging.getLogger(__name__)
router = APIRouter()


def _parse_post_id(raw) -> Optional[int]:  # noqa: ANN001
    if not raw:
        return None
    try:
        post_id = int(raw)
    except (TypeError, ValueError):
        raise ValidationFailed({"post_id": "post_id must be an integer"}) from None
    # Post ids start at 1; zero means "do not attach"
    return post_id or None


@router.post(
    "",
    response_model=Envelope,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
async def upload_media(
    request: Request,
    user_id: Optional[str] = Depends(current_user_id),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    """
    Store an image and, when ``post_id`` is given, attach its public URL to
    that post. Attachment re-checks ownership; if it fails the stored object
    is kept and the error response still includes ``public_url``.
    """
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" not in content_type:
        raise ValidationFailed({"file": "Expected multipart/form-data"}, "Expected multipart/form-data")

    if user_id is None and not settings.allow_anonymous_uploads:
        raise AuthenticationRequired()

    form = await request.form()
    upload = form.get("file")
    if not isinstance(upload, UploadFile):
        raise ValidationFailed({"file": "No file provided"}, "No file provided")
    post_id = _parse_post_id(form.get("post_id"))

    data = await upload.read()
    media = MediaAttachment(request.app.state.storage, PostRepository(db), settings.storage_bucket)
    result = await media.upload(
        data,
        upload.content_type,
        upload.filename,
        post_id=post_id,
        requester_id=user_id,
    )

    if result.post is None:
        return Envelope(message="Success", public_url=result.public_url)
    return Envelope(
        message="Success",
        public_url=result.public_url,
        post=PostOut.model_validate(result.post),
    )


@router.get("", response_model=Envelope, response_model_exclude_unset=True)
async def upload_usage():
    return Envelope(message="Use POST to upload a file")
