"""
One-off maintenance: give legacy posts (created before sign-in existed) an author.

Not part of the request path; run through ``scripts/migrate_default_user.py``.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.repository import PostRepository, UserRepository

logger = logging.getLogger(__name__)

PLACEHOLDER_USER = {
    "id": "default-user",
    "email": "default@example.com",
    "first_name": "Default",
    "last_name": "User",
}


async def backfill_legacy_authors(session: AsyncSession) -> int:
    """
    Upsert the placeholder user and assign it to every post without an author.

    Idempotent: an existing placeholder row is left as is, and a second run
    finds no authorless posts. Returns the number of posts updated. The
    caller owns the transaction.
    """
    posts = PostRepository(session)
    users = UserRepository(session)

    pending = await posts.count_without_author()
    logger.info("Posts without an author: %d", pending)
    if not pending:
        return 0

    if await users.get(PLACEHOLDER_USER["id"]) is None:
        await users.create(**PLACEHOLDER_USER)
        logger.info("Created placeholder user %s", PLACEHOLDER_USER["id"])

    updated = await posts.backfill_author(PLACEHOLDER_USER["id"])
    logger.info("Assigned %d posts to %s", updated, PLACEHOLDER_USER["id"])
    return updated
