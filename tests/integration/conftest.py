import json

import fakeredis.aioredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.services.redis_counter_store import RedisCounterStore
from src.adapter.services.redis_mail_queue import RedisMailQueue
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.rate_limiter import RateLimiter, build_policies
from src.app.utils.crypto import hash_password
from src.depends import get_unit_of_work
from src.domain.entities import User


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def redis_client():
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def app(session_factory, redis_client):
    """Application wired to the test database and fakeredis (production policies)"""
    from config import ApplicationConfig
    from src.api.app import create_app

    app = create_app(ApplicationConfig)

    counter_store = RedisCounterStore(redis_client)
    app.state.counter_store = counter_store
    app.state.rate_limiter = RateLimiter(counter_store, build_policies("production"))
    app.state.mail_queue = RedisMailQueue(redis_client, queue_name="mail")

    async def override_get_unit_of_work():
        async with session_factory() as session:
            yield SqlAlchemyUnitOfWork(session)

    app.dependency_overrides[get_unit_of_work] = override_get_unit_of_work
    return app


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def mail_jobs(redis_client):
    """Reads the jobs enqueued on the mail queue"""

    async def read():
        return [json.loads(raw) for raw in await redis_client.lrange("mail", 0, -1)]

    return read


@pytest.fixture
def create_user(session_factory):
    """Inserts a user directly; password hashed with a low cost factor"""

    async def create(email="user@example.com", password="Str0ng!Pass", **fields):
        user = User(email=email, password_hash=hash_password(password, rounds=4), **fields)
        async with session_factory() as session:
            session.add(user)
            await session.commit()
            await session.refresh(user)
        return user

    return create


@pytest.fixture
def fetch_user(session_factory):
    """Loads the current state of a user in a fresh session"""

    async def fetch(email="user@example.com"):
        async with session_factory() as session:
            result = await session.exec(select(User).where(User.email == email))
            return result.first()

    return fetch
