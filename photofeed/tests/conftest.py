import os

# Must be set before photofeed.config is imported anywhere
os.environ["ENVIRONMENT"] = "testing"
os.environ["TESTING"] = "true"

import pytest
from typing import AsyncGenerator, Callable, Optional
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from photofeed.main import app
from photofeed.config import settings
from photofeed.db.base import Base
from photofeed.db.session import get_db, enable_sqlite_foreign_keys
from photofeed.api.posts import get_storage
from photofeed.client.transport import ApiClient
from photofeed.models.post import Post
from photofeed.models.user import User
from photofeed.services.auth_service import AuthService, Identity
from photofeed.services.post_service import PostService
from photofeed.services.storage_service import StorageService
import photofeed.models  # noqa: F401

# Test database URL - in-memory SQLite
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

BASE_URL = "http://testserver"


def make_token(subject: str, name: Optional[str] = None, secret: Optional[str] = None) -> str:
    """Mint a token the way the identity provider would"""
    return jwt.encode(
        {"sub": subject, "name": name or subject},
        secret or settings.identity_secret_key,
        algorithm=settings.IDENTITY_ALGORITHM,
    )


@pytest.fixture
async def test_engine():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for assertions straight against the database"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path) -> StorageService:
    return StorageService(root=str(tmp_path), bucket="uploads", public_url=f"{BASE_URL}/storage")


@pytest.fixture
async def test_client(session_factory, storage) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the app with the test database and storage"""
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[..., dict]:
    def _headers(subject: str, name: Optional[str] = None) -> dict:
        return {"Authorization": f"Bearer {make_token(subject, name)}"}
    return _headers


@pytest.fixture
def create_user(session_factory):
    """Insert a user the way the auth dependency would on first sign-in"""
    async def _create(subject: str, name: Optional[str] = None) -> User:
        async with session_factory() as session:
            return await AuthService(session).sync_user(Identity(subject=subject, name=name or subject))
    return _create


@pytest.fixture
def create_post(session_factory):
    """Insert a post row directly, skipping the upload"""
    async def _create(user: User, caption: Optional[str] = None) -> Post:
        async with session_factory() as session:
            return await PostService(session).create_post(
                user_id=user.id,
                image_url=f"{BASE_URL}/storage/uploads/{user.clerk_id}/posts/seed.png",
                image_path=None,
                caption=caption,
            )
    return _create


@pytest.fixture
async def api_client(test_client) -> AsyncGenerator[Callable[..., ApiClient], None]:
    """Factory for client-side ApiClients talking to the in-process app"""
    clients = []

    def _client(subject: Optional[str] = None, name: Optional[str] = None) -> ApiClient:
        client = ApiClient(
            base_url=BASE_URL,
            token=make_token(subject, name) if subject else None,
            transport=ASGITransport(app=app),
        )
        clients.append(client)
        return client

    yield _client

    for client in clients:
        await client.close()


@pytest.fixture
def post_payload() -> Callable[..., dict]:
    """JSON for one feed post, as the API serializes it"""
    def _payload(post_id: int, **overrides) -> dict:
        payload = {
            "post_id": post_id,
            "user_id": 1,
            "image_url": f"{BASE_URL}/storage/uploads/user_alice/posts/{post_id}.png",
            "caption": f"Post {post_id}",
            "created_at": "2024-01-01T12:00:00",
            "likes_count": 0,
            "comments_count": 0,
            "name": "Alice",
            "clerk_id": "user_alice",
            "isLiked": False,
            "recentComments": [],
        }
        payload.update(overrides)
        return payload
    return _payload
