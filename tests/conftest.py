import os

os.environ.setdefault("PASSWORD_BCRYPT_ROUNDS", "4")
os.environ.setdefault("FORUM_SEED_CATEGORIES", "false")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.database import Base, get_db
from app.main import app as fastapi_app
from app.models.forum import Category, Post, Thread
from app.models.user import User
from app.modules.forum import ForumService
from app.modules.users import UserService


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_user(db):
    async def factory(username: str, password: str = "password123") -> User:
        return await UserService(db).create_user(username=username, password=password)

    return factory


@pytest_asyncio.fixture
async def category(db) -> Category:
    return await ForumService(db).create_category(name="General", description="Anything goes")


@pytest_asyncio.fixture
async def make_thread(db, category):
    async def factory(author: User, **kwargs) -> Thread:
        kwargs.setdefault("category_id", category.id)
        kwargs.setdefault("title", "Hello")
        kwargs.setdefault("content", "First!")
        return await ForumService(db).create_thread(author_id=author.id, **kwargs)

    return factory


@pytest.fixture
def make_post(db):
    async def factory(thread: Thread, author: User, parent: Post | None = None, content: str = "Hi") -> Post:
        return await ForumService(db).create_post(
            thread_id=thread.id,
            author_id=author.id,
            content=content,
            parent_post_id=parent.id if parent else None,
        )

    return factory


@pytest_asyncio.fixture
async def make_client(session_maker):
    """Factory for API clients, one cookie jar (session) per client."""

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db] = override_get_db
    clients: list[AsyncClient] = []

    def factory(raise_app_exceptions: bool = True) -> AsyncClient:
        transport = ASGITransport(app=fastapi_app, raise_app_exceptions=raise_app_exceptions)
        client = AsyncClient(transport=transport, base_url="http://testserver")
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def login_as(make_client):
    """Register a user and return (client, user payload)."""

    async def factory(username: str, password: str = "password123"):
        client = make_client()
        response = await client.post(
            "/api/register",
            json={"username": username, "password": password},
        )
        assert response.status_code == 201, response.text
        return client, response.json()

    return factory
