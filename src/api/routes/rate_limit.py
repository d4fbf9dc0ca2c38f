"""
Rate Limit Routes - Diagnostics and Administration

Status and configuration are read-only. Resetting a counter is an
administrative override and requires the admin API key.
"""

from datetime import datetime
from typing import Dict

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from config import ApplicationConfig
from src.api.error import ServerError
from src.api.utils.admin_auth import verify_admin_api_key
from src.app.services.counter_store import CounterStoreError
from src.app.services.rate_limiter import RateLimiter
from src.core.result import Error
from src.depends import get_rate_limiter

router = APIRouter(prefix="/rate-limit", tags=["Rate Limit"])


class RateLimitStatusResponse(BaseModel):
    policy_type: str
    identifier: str
    is_allowed: bool
    current_count: int
    limit: int
    remaining: int
    window_seconds: int
    remaining_seconds: int
    reset_at: datetime


class PolicyConfig(BaseModel):
    window_seconds: int
    limit: int


class RateLimitConfigResponse(BaseModel):
    environment: str
    fail_open: bool
    policies: Dict[str, PolicyConfig]


class RateLimitHealthResponse(BaseModel):
    status: str
    redis: str


@router.get(
    "/status/{policy_type}/{identifier}",
    name="rate_limit.status",
    response_model=RateLimitStatusResponse,
)
async def get_rate_limit_status(
    policy_type: str,
    identifier: str,
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Current usage of a counter, without counting a request"""
    try:
        result = await rate_limiter.peek_status(policy_type, identifier)
    except CounterStoreError:
        raise ServerError(Error("COUNTER_STORE_UNAVAILABLE", "Counter store unavailable"))

    return RateLimitStatusResponse(
        policy_type=policy_type,
        identifier=identifier,
        is_allowed=result.is_allowed,
        current_count=result.current_count,
        limit=result.limit,
        remaining=result.remaining,
        window_seconds=result.window_seconds,
        remaining_seconds=result.remaining_seconds,
        reset_at=result.reset_at,
    )


@router.delete(
    "/reset/{policy_type}/{identifier}",
    name="rate_limit.reset",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(verify_admin_api_key)],
)
async def reset_rate_limit(
    policy_type: str,
    identifier: str,
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Delete a counter (administrative override)"""
    try:
        await rate_limiter.reset(policy_type, identifier)
    except CounterStoreError:
        raise ServerError(Error("COUNTER_STORE_UNAVAILABLE", "Counter store unavailable"))

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/config", name="rate_limit.config", response_model=RateLimitConfigResponse)
async def get_rate_limit_config(rate_limiter: RateLimiter = Depends(get_rate_limiter)):
    """Resolved policy table"""
    return RateLimitConfigResponse(
        environment=ApplicationConfig.ENVIRONMENT,
        fail_open=rate_limiter.fail_open,
        policies={
            name: PolicyConfig(window_seconds=policy.window_seconds, limit=policy.limit)
            for name, policy in rate_limiter.configurations().items()
        },
    )


@router.get("/health", name="rate_limit.health", response_model=RateLimitHealthResponse)
async def get_rate_limit_health(rate_limiter: RateLimiter = Depends(get_rate_limiter)):
    """Counter store connectivity"""
    if await rate_limiter.is_healthy():
        return RateLimitHealthResponse(status="healthy", redis="connected")
    return RateLimitHealthResponse(status="unhealthy", redis="disconnected")
