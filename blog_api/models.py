"""
SQLAlchemy ORM models.

Tables:
  users     — local mirror of identity-provider accounts (written by the webhook consumer)
  posts     — blog posts; image bytes live in object storage, only the public URL is kept
  favorites — user × post marker, at most one row per pair
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blog_api.database import Base

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 5000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    # Identity-provider id, never generated locally
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    first_name: Mapped[Optional[str]] = mapped_column(String(255))
    last_name: Mapped[Optional[str]] = mapped_column(String(255))
    image_url: Mapped[Optional[str]] = mapped_column(String(2048))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    # Nullable only for legacy rows awaiting the author backfill
    author_id: Mapped[Optional[str]] = mapped_column(
        String(255), ForeignKey("users.id")
    )
    image_url: Mapped[Optional[str]] = mapped_column(String(2048))

    author = relationship("User", lazy="joined")

    __table_args__ = (
        Index("idx_posts_author", "author_id"),
        Index("idx_posts_date", "date"),
    )


class Favorite(Base):
    __tablename__ = "favorites"

    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.id"), primary_key=True
    )
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_favorites_post", "post_id"),
    )
