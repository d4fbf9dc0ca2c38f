from fastapi import Request
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.utils.client_ip import get_client_ip
from src.app.services.mail_queue import IMailQueue
from src.app.services.rate_limiter import RateLimiter
from src.app.use_cases.auth import RequestContext

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def init_db():
    import src.domain.entities  # noqa: F401  registers the tables

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_mail_queue(request: Request) -> IMailQueue:
    return request.app.state.mail_queue


def get_request_context(request: Request) -> RequestContext:
    """Client address and user agent for audit logging"""
    return RequestContext(
        ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent", ""),
    )
