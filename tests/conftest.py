"""Test fixtures and configuration."""

import os
import time
from typing import Optional

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

# Keep the module-level app in blog_api.main from wiring up OTLP export
os.environ["TRACING_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "testing"

from blog_api.config import Settings  # noqa: E402
from blog_api.database import create_session_factory, init_db  # noqa: E402
from blog_api.main import create_app  # noqa: E402
from blog_api.models import Post, User  # noqa: E402

JWT_SECRET = "test-session-secret-with-at-least-32-bytes!"
# base64 of "webhook-test-secret-0123456789ab"
WEBHOOK_SECRET = "whsec_d2ViaG9vay10ZXN0LXNlY3JldC0wMTIzNDU2Nzg5YWI="


class InMemoryStorage:
    """Object storage double: keeps bytes in a dict, can be told to fail."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], tuple[bytes, Optional[str]]] = {}
        self.fail_with: Optional[Exception] = None

    def upload(self, bucket, key, data, content_type, upsert=False):
        if self.fail_with is not None:
            raise self.fail_with
        if not upsert and (bucket, key) in self.objects:
            raise RuntimeError(f"object {bucket}/{key} already exists")
        self.objects[(bucket, key)] = (data, content_type)
        return key

    def get_public_url(self, bucket, path):
        return f"http://storage.test/{bucket}/{path}"

    def get(self, public_url: str):
        bucket, key = public_url.removeprefix("http://storage.test/").split("/", 1)
        return self.objects.get((bucket, key))


def make_token(user_id: str, expires_in: int = 3600) -> str:
    return jwt.encode(
        {"sub": user_id, "exp": int(time.time()) + expires_in},
        JWT_SECRET,
        algorithm="HS256",
    )


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite://",
        tracing_enabled=False,
        identity_jwt_key=JWT_SECRET,
        identity_jwt_algorithms=["HS256"],
        clerk_webhook_secret=WEBHOOK_SECRET,
        storage_bucket="images",
    )


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def app(settings, session_factory, storage):
    app = create_app(settings)
    app.state.session_factory = session_factory
    app.state.storage = storage
    return app


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def users(session_factory):
    """Two mirrored users: alice and bob."""
    async with session_factory() as session:
        session.add_all(
            [
                User(id="alice", email="alice@example.com", first_name="Alice"),
                User(id="bob", email="bob@example.com", first_name="Bob"),
            ]
        )
        await session.commit()
    return ["alice", "bob"]


@pytest_asyncio.fixture
async def add_post(session_factory):
    """Insert a post directly and return its id."""

    async def _add(author_id: Optional[str], title: str = "Hello", **fields) -> int:
        async with session_factory() as session:
            post = Post(
                title=title,
                description=fields.pop("description", "Body"),
                author_id=author_id,
                **fields,
            )
            session.add(post)
            await session.commit()
            return post.id

    return _add


@pytest_asyncio.fixture
async def load_post(session_factory):
    async def _load(post_id: int) -> Optional[Post]:
        async with session_factory() as session:
            return await session.get(Post, post_id)

    return _load
