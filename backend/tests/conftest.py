import os

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from auth.application.services import register_user
from auth.infrastructure.user_repository import DbUserRepository
from main import app
from shared.dependencies import get_db, get_lock_manager
from shared.infrastructure.database import Base
from shared.infrastructure.locks import LocalLockManager

import auth.infrastructure.models  # noqa: F401
import diagrams.infrastructure.models  # noqa: F401
import sharing.infrastructure.models  # noqa: F401


@pytest.fixture
def database_url(tmp_path) -> str:
    return os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
async def test_engine(database_url):
    engine = create_async_engine(database_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def locks() -> LocalLockManager:
    return LocalLockManager(timeout=2.0)


@pytest.fixture(autouse=True)
async def override_dependencies(session_factory, locks):
    async def _override():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override
    app.dependency_overrides[get_lock_manager] = lambda: locks
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(db):
    async def _make(name: str):
        return await register_user(
            DbUserRepository(db),
            username=name,
            email=f"{name}@example.com",
            password="secret123",
        )

    return _make


@pytest.fixture
async def alice(make_user):
    return await make_user("alice")


@pytest.fixture
async def bob(make_user):
    return await make_user("bob")


@pytest.fixture
async def carol(make_user):
    return await make_user("carol")


async def create_user_and_get_headers(client: AsyncClient, suffix: str = "") -> dict:
    """Register a user and return auth headers."""
    headers, _ = await register_and_login(client, f"testuser{suffix}")
    return headers


async def register_and_login(client: AsyncClient, username: str) -> tuple[dict, str]:
    """Register ``username`` and return (auth headers, user id)."""
    resp = await client.post(
        "/api/auth/register",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": "secret123",
        },
    )
    user_id = resp.json()["id"]
    resp = await client.post(
        "/api/auth/login",
        json={"email": f"{username}@example.com", "password": "secret123"},
    )
    token = resp.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}, user_id


@pytest.fixture
async def auth_headers(client) -> dict:
    return await create_user_and_get_headers(client)
