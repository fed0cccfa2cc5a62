# tests/conftest.py

import os

os.environ.setdefault("SECRET", "test-secret-used-only-by-the-test-suite")

import pytest
from fastapi_cache import FastAPICache
from fastapi_cache.backends.inmemory import InMemoryBackend
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from analytics.models import clicks
from analytics.models import metadata as links_metadata
from auth.db import Role, User
from database import get_session_maker
from main import app
from models import Base

TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"
engine = create_async_engine(TEST_DATABASE_URL)
TestSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

DEFAULT_PASSWORD = "default-password"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def setup_database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.run_sync(links_metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(links_metadata.drop_all)


@pytest.fixture
async def client(setup_database):
    FastAPICache.init(InMemoryBackend(), prefix="test-cache")
    app.dependency_overrides[get_session_maker] = lambda: TestSessionLocal
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    async def _login(email: str, password: str = DEFAULT_PASSWORD) -> dict:
        response = await client.post(
            "/auth/register",
            json={"email": email, "password": password, "name": email.split("@")[0]},
        )
        assert response.status_code == 201, response.text
        response = await client.post(
            "/auth/jwt/login",
            data={"username": email, "password": password},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest.fixture
async def owner_headers(login):
    return await login("owner@test.com")


@pytest.fixture
async def other_headers(login):
    return await login("other@test.com")


@pytest.fixture
def promote_to_admin(setup_database):
    async def _promote(email: str) -> None:
        async with TestSessionLocal() as session:
            await session.execute(
                update(User).where(User.email == email).values(role=Role.ADMIN.value)
            )
            await session.commit()

    return _promote


@pytest.fixture
def count_clicks(setup_database):
    async def _count() -> int:
        async with TestSessionLocal() as session:
            result = await session.execute(select(func.count()).select_from(clicks))
            return result.scalar_one()

    return _count
