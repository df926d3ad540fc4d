"""
Identity provider webhooks:
  POST /webhooks/clerk — user.created / user.updated / user.deleted
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.auth import get_settings
from blog_api.config import Settings
from blog_api.database import get_db
from blog_api.identity_events import IdentityEventConsumer, build_webhook, verify_event
from blog_api.repository import UserRepository
from blog_api.schemas import Envelope

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/clerk", response_model=Envelope, response_model_exclude_unset=True)
async def identity_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    body = await request.body()
    # Signature first: nothing in the body is trusted before this passes
    event = verify_event(build_webhook(settings.clerk_webhook_secret), body, request.headers)
    message = await IdentityEventConsumer(UserRepository(db)).handle(event)
    return Envelope(message=message)
