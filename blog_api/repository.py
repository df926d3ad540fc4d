"""
Data access for posts, the user mirror and favorites.

Every repository is bound to one request-scoped ``AsyncSession``; nothing
here commits. The session dependency in ``database.get_db`` owns the
transaction. SQLAlchemy errors propagate unchanged and are mapped to an
upstream failure at the HTTP boundary.
"""
import logging
from typing import Any, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.models import Favorite, Post, User

logger = logging.getLogger(__name__)


class PostRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_id(self, post_id: int) -> Optional[Post]:
        return await self.session.get(Post, post_id)

    async def find_by_id_and_author(self, post_id: int, author_id: str) -> Optional[Post]:
        """Ownership re-check: id and author are one combined filter."""
        result = await self.session.execute(
            select(Post).where(Post.id == post_id, Post.author_id == author_id)
        )
        return result.scalar_one_or_none()

    async def find_all_ordered_by_date(self) -> Sequence[Post]:
        result = await self.session.execute(select(Post).order_by(Post.date.asc()))
        return result.scalars().all()

    async def find_all_by_author(self, author_id: str) -> Sequence[Post]:
        result = await self.session.execute(
            select(Post).where(Post.author_id == author_id).order_by(Post.date.asc())
        )
        return result.scalars().all()

    async def create(self, **fields: Any) -> Post:
        post = Post(**fields)
        self.session.add(post)
        await self.session.flush()                  # materialise id + date
        await self.session.refresh(post, ["author"])
        return post

    async def update(self, post_id: int, **fields: Any) -> Optional[Post]:
        post = await self.session.get(Post, post_id)
        if post is None:
            return None
        for name, value in fields.items():
            setattr(post, name, value)
        await self.session.flush()
        return post

    async def delete(self, post_id: int) -> None:
        await self.session.execute(
            delete(Favorite).where(Favorite.post_id == post_id)
        )
        await self.session.execute(delete(Post).where(Post.id == post_id))

    async def backfill_author(self, author_id: str) -> int:
        """Set ``author_id`` on every legacy post that has none."""
        result = await self.session.execute(
            update(Post).where(Post.author_id.is_(None)).values(author_id=author_id)
        )
        return result.rowcount or 0

    async def count_without_author(self) -> int:
        result = await self.session.execute(
            select(Post.id).where(Post.author_id.is_(None))
        )
        return len(result.all())


class UserRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, user_id: str) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def create(self, **fields: Any) -> User:
        user = User(**fields)
        self.session.add(user)
        await self.session.flush()
        return user

    async def update(self, user_id: str, **fields: Any) -> Optional[User]:
        user = await self.session.get(User, user_id)
        if user is None:
            return None
        for name, value in fields.items():
            setattr(user, name, value)
        await self.session.flush()
        return user

    async def delete_with_content(self, user_id: str) -> bool:
        """
        Remove a user together with their posts and every favorite that
        points at them or was made by them. Returns False when the id is unknown.
        """
        user = await self.session.get(User, user_id)
        if user is None:
            return False

        own_posts = select(Post.id).where(Post.author_id == user_id)
        await self.session.execute(
            delete(Favorite).where(
                (Favorite.user_id == user_id) | Favorite.post_id.in_(own_posts)
            )
        )
        await self.session.execute(delete(Post).where(Post.author_id == user_id))
        await self.session.delete(user)
        await self.session.flush()
        return True


class FavoriteRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find(self, user_id: str, post_id: int) -> Optional[Favorite]:
        result = await self.session.execute(
            select(Favorite).where(
                Favorite.user_id == user_id, Favorite.post_id == post_id
            )
        )
        return result.scalar_one_or_none()

    async def create(self, user_id: str, post_id: int) -> Favorite:
        """Insert inside a SAVEPOINT so a duplicate key leaves the outer transaction usable."""
        favorite = Favorite(user_id=user_id, post_id=post_id)
        async with self.session.begin_nested():
            self.session.add(favorite)
        return favorite

    async def delete_matching(self, user_id: str, post_id: int) -> int:
        result = await self.session.execute(
            delete(Favorite).where(
                Favorite.user_id == user_id, Favorite.post_id == post_id
            )
        )
        return result.rowcount or 0
