"""Pytest configuration and fixtures."""

import os

# Rate limits would trip over the number of requests a test run makes
os.environ.setdefault("TASKNEST_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("TASKNEST_JWT_SECRET", "test-secret")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from tasknest.client.api import ApiClient
from tasknest.database import get_db
from tasknest.main import create_app
from tasknest.models import Base, Todo
from tasknest.schemas.auth import UserCreate
from tasknest.services.auth_service import AuthService


@pytest.fixture
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session(test_engine):
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session_maker() as session:
        yield session


@pytest.fixture
async def user(test_session):
    """A registered user."""
    return await AuthService(test_session).register(
        UserCreate(email="ada@example.com", password="secret123", name="Ada")
    )


@pytest.fixture
async def other_user(test_session):
    """A second user whose data must stay invisible to the first."""
    return await AuthService(test_session).register(
        UserCreate(email="bob@example.com", password="secret123", name="Bob")
    )


@pytest.fixture
async def app(test_engine):
    """Create the application with its database swapped for the test engine."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
async def client(app):
    """Create a test client for the application."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register(client, email="ada@example.com", password="secret123", name="Ada"):
    """Register through the API and return auth headers."""
    response = await client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "name": name},
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
async def auth_headers(client):
    """Bearer headers of a freshly registered user."""
    return await register(client)


@pytest.fixture
async def api(app, auth_headers):
    """An ``ApiClient`` signed in as the ``auth_headers`` user."""
    token = auth_headers["Authorization"].removeprefix("Bearer ")
    api = ApiClient("http://test/api", token=token, transport=ASGITransport(app=app))
    yield api
    await api.aclose()


async def assert_invariants(session: AsyncSession) -> None:
    """Check the structural invariants over every stored todo.

    Pass the session the writes went through, or a fresh one after they were
    committed.
    """
    todos = list((await session.execute(select(Todo))).scalars())
    by_id = {todo.id: todo for todo in todos}
    for todo in todos:
        assert todo.is_completed == (todo.completed_at is not None), todo
        if todo.parent_id is not None:
            assert todo.order is None, todo
            assert todo.parent_id in by_id, todo
            assert todo.id in by_id[todo.parent_id].child_ids, todo
        for child_id in todo.child_ids:
            assert child_id in by_id, todo
            assert by_id[child_id].parent_id == todo.id, todo
