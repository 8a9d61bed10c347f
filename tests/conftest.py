"""
Shared pytest fixtures.

Each test gets its own in-memory SQLite database (via aiosqlite) so tests run
with no external infrastructure. ``StaticPool`` keeps every session on the one
connection that holds the in-memory schema.
"""

import uuid
from collections.abc import Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import yigyaps.models  # noqa: F401
from yigyaps.auth.jwt import create_access_token
from yigyaps.database import Base, get_db, json_dumps
from yigyaps.main import app
from yigyaps.models.user import User

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

PACKAGES = "/v1/packages"
INSTALLATIONS = "/v1/installations"


def package_body(package_id: str = "echo", **overrides) -> dict:
    body = {
        "packageId": package_id,
        "version": "0.1.0",
        "displayName": package_id.replace("-", " ").title(),
        "description": "d",
        "authorName": "a",
        "category": "tools",
        "license": "open-source",
        "mcpTransport": "stdio",
        "mcpCommand": package_id,
    }
    body.update(overrides)
    return body


# ── Database ──────────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine():
    _engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        json_serializer=json_dumps,
    )
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


# ── HTTP test client ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncClient:
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.pop(get_db, None)


# ── Users + auth headers ──────────────────────────────────────────────────────

MakeUser = Callable[..., Awaitable[User]]


@pytest.fixture
def make_user(session_factory) -> MakeUser:
    """Insert a user directly; returns the committed row."""

    async def _make(username: str | None = None, tier: str = "free", role: str = "user") -> User:
        username = username or f"user-{uuid.uuid4().hex[:8]}"
        async with session_factory() as session:
            user = User(
                github_id=uuid.uuid4().hex,
                github_username=username,
                display_name=username.title(),
                tier=tier,
                role=role,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest_asyncio.fixture
async def author(make_user) -> User:
    return await make_user("u1")


@pytest_asyncio.fixture
async def author_headers(author) -> dict[str, str]:
    return bearer(author)


@pytest_asyncio.fixture
async def installer(make_user) -> User:
    return await make_user("u2")


@pytest_asyncio.fixture
async def installer_headers(installer) -> dict[str, str]:
    return bearer(installer)


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user("root", role="admin")


@pytest_asyncio.fixture
async def admin_headers(admin) -> dict[str, str]:
    return bearer(admin)


@pytest_asyncio.fixture
async def published(client: AsyncClient, author_headers) -> dict:
    """The ``echo`` package, published by ``u1``."""
    resp = await client.post(PACKAGES, json=package_body(), headers=author_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()
