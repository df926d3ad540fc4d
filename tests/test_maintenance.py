from sqlalchemy import func, select

from blog_api.maintenance import PLACEHOLDER_USER, backfill_legacy_authors
from blog_api.models import Post, User


async def test_backfill_assigns_placeholder_to_legacy_posts(session_factory, users, add_post, load_post):
    legacy_a = await add_post(None, title="legacy a")
    legacy_b = await add_post(None, title="legacy b")
    owned = await add_post("alice", title="owned")

    async with session_factory() as session:
        async with session.begin():
            updated = await backfill_legacy_authors(session)

    assert updated == 2
    assert (await load_post(legacy_a)).author_id == PLACEHOLDER_USER["id"]
    assert (await load_post(legacy_b)).author_id == PLACEHOLDER_USER["id"]
    assert (await load_post(owned)).author_id == "alice"

    async with session_factory() as session:
        placeholder = await session.get(User, PLACEHOLDER_USER["id"])
    assert placeholder.email == "default@example.com"


async def test_backfill_is_idempotent(session_factory, add_post):
    await add_post(None)

    for _ in range(2):
        async with session_factory() as session:
            async with session.begin():
                await backfill_legacy_authors(session)

    async with session_factory() as session:
        user_count = await session.scalar(select(func.count()).select_from(User))
        orphaned = await session.scalar(
            select(func.count()).select_from(Post).where(Post.author_id.is_(None))
        )
    assert user_count == 1
    assert orphaned == 0


async def test_backfill_without_legacy_posts_creates_nothing(session_factory, users, add_post):
    await add_post("alice")

    async with session_factory() as session:
        async with session.begin():
            assert await backfill_legacy_authors(session) == 0
        assert await session.get(User, PLACEHOLDER_USER["id"]) is None
