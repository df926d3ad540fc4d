"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


# ──────────────────────────── Users ───────────────────────────────────────

class AuthorOut(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None

    class Config:
        from_attributes = True


# ──────────────────────────── Posts ───────────────────────────────────────

class PostInput(BaseModel):
    """Create / update body. Bounds are checked by ``validation.validate_post_input``."""
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None


class PostOut(BaseModel):
    id: int
    title: str
    description: str
    date: datetime
    author_id: Optional[str]
    image_url: Optional[str] = None
    author: Optional[AuthorOut] = None

    class Config:
        from_attributes = True


class FavoriteOut(BaseModel):
    user_id: str
    post_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class Envelope(BaseModel):
    """The single response shape used by every JSON endpoint."""
    message: str
    post: Optional[PostOut] = None
    posts: Optional[list[PostOut]] = None
    favorite: Optional[FavoriteOut] = None
    public_url: Optional[str] = None
    errors: Optional[dict[str, str]] = None
    err: Optional[Any] = None


# ──────────────────────────── Identity webhooks ───────────────────────────

class EmailAddress(BaseModel):
    email_address: str


class IdentityUserData(BaseModel):
    """The provider's user object; only the mirrored fields are declared."""
    id: Optional[str] = None
    email_addresses: list[EmailAddress] = Field(default_factory=list)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def primary_email(self) -> str:
        return self.email_addresses[0].email_address if self.email_addresses else ""


class IdentityEvent(BaseModel):
    type: str
    data: dict[str, Any] = Field(default_factory=dict)
