from unittest.mock import AsyncMock, MagicMock

import fakeredis.aioredis
import pytest
import pytest_asyncio

from src.adapter.services.redis_counter_store import RedisCounterStore
from src.app.services.rate_limiter import RateLimiter, build_policies


@pytest.fixture
def mock_uow():
    """Mock UnitOfWork with all repositories"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    uow.users = MagicMock()
    uow.users.get_by_email = AsyncMock(return_value=None)
    uow.users.get_by_id = AsyncMock(return_value=None)
    uow.users.create = AsyncMock(side_effect=lambda user: user)
    uow.users.update = AsyncMock(side_effect=lambda user: user)
    uow.users.update_lockout = AsyncMock()

    uow.email_verification_tokens = MagicMock()
    uow.email_verification_tokens.create = AsyncMock(side_effect=lambda token: token)
    uow.email_verification_tokens.get_by_token_hash = AsyncMock(return_value=None)
    uow.email_verification_tokens.update = AsyncMock(side_effect=lambda token: token)
    uow.email_verification_tokens.invalidate_unused_for_user = AsyncMock(return_value=0)

    uow.password_reset_otps = MagicMock()
    uow.password_reset_otps.create = AsyncMock(side_effect=lambda otp: otp)
    uow.password_reset_otps.get_latest_unused_for_user = AsyncMock(return_value=None)
    uow.password_reset_otps.get_latest_for_user = AsyncMock(return_value=None)
    uow.password_reset_otps.update = AsyncMock(side_effect=lambda otp: otp)
    uow.password_reset_otps.invalidate_unused_for_user = AsyncMock(return_value=0)

    return uow


@pytest.fixture
def mock_mail_queue():
    queue = MagicMock()
    queue.enqueue_verification_email = AsyncMock()
    queue.enqueue_reset_otp_email = AsyncMock()
    return queue


@pytest_asyncio.fixture
async def redis_client():
    """fakeredis client emulating Redis in memory"""
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def counter_store(redis_client):
    return RedisCounterStore(redis_client)


@pytest.fixture
def rate_limiter(counter_store):
    return RateLimiter(counter_store, build_policies("production"))
