"""
Rate limit gate

A single middleware enforces the per-endpoint policies declared in
``ROUTE_RATE_LIMITS``, keyed by "METHOD /path". The client address is the
identifier. Every response on a guarded endpoint carries the X-RateLimit-*
headers; rejected requests get 429 with the rate limit details, and an
unexpected limiter failure yields 503 instead of an unhandled exception.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Mapping, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from src.api.utils.client_ip import get_client_ip
from src.app.services.rate_limiter import (
    RateLimiter,
    RateLimitResult,
    describe_wait,
    rate_limit_details,
)
from src.domain.entities import RateLimitPolicyType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteRateLimit:
    """Policy declared for one endpoint; window/limit override the policy defaults"""

    policy_type: str
    window_seconds: Optional[int] = None
    limit: Optional[int] = None


ROUTE_RATE_LIMITS: Dict[str, RouteRateLimit] = {
    "POST /auth/register": RouteRateLimit(RateLimitPolicyType.register.value),
    "POST /auth/login": RouteRateLimit(RateLimitPolicyType.login.value),
    "POST /auth/verify-email": RouteRateLimit(RateLimitPolicyType.verify_email.value),
    "POST /auth/forgot-password": RouteRateLimit(RateLimitPolicyType.sensitive.value),
    "POST /auth/reset-password": RouteRateLimit(RateLimitPolicyType.sensitive.value),
    "POST /auth/resend-verification": RouteRateLimit(RateLimitPolicyType.sensitive.value),
    "POST /auth/resend-password-reset": RouteRateLimit(RateLimitPolicyType.sensitive.value),
}


def build_route_limits(
    overrides: Optional[Mapping[str, Optional[Mapping]]] = None,
) -> Dict[str, RouteRateLimit]:
    """
    Merge configured overrides into the default route map.

    Args:
        overrides: {"METHOD /path": {"policy_type", "window_seconds"?, "limit"?}};
            a None value removes the endpoint from gating
    """
    routes = dict(ROUTE_RATE_LIMITS)
    for endpoint, values in (overrides or {}).items():
        if values is None:
            routes.pop(endpoint, None)
            continue
        current = routes.get(endpoint)
        policy_type = values.get("policy_type") or (current.policy_type if current else None)
        if not policy_type:
            raise ValueError(f"Endpoint {endpoint} needs a policy_type")
        routes[endpoint] = RouteRateLimit(
            policy_type=policy_type,
            window_seconds=values.get("window_seconds"),
            limit=values.get("limit"),
        )
    return routes


def rate_limit_message(result: RateLimitResult) -> str:
    wait = describe_wait(result.remaining_seconds)
    if result.policy_type == RateLimitPolicyType.login.value:
        return (
            f"Too many login attempts. Please try again in {wait}. "
            f"You have exceeded the limit of {result.limit} login attempts."
        )
    if result.policy_type == RateLimitPolicyType.sensitive.value:
        return (
            f"Too many requests for sensitive operations. Please wait {wait} "
            f"before trying again. Limit: {result.limit} requests."
        )
    if result.policy_type == RateLimitPolicyType.upload.value:
        return (
            f"File upload limit exceeded. You can upload up to {result.limit} files "
            f"per hour. Please try again in {wait}."
        )
    return (
        f"Rate limit exceeded. Please wait {wait} before making more requests. "
        f"Limit: {result.limit} requests."
    )


def rate_limit_headers(result: RateLimitResult) -> Dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(int(result.reset_at.timestamp())),
        "X-RateLimit-Reset-Time": result.reset_at.isoformat(),
        "X-RateLimit-Window": str(result.window_seconds),
    }


def endpoint_key(request: Request) -> str:
    """Endpoint key ("METHOD /path") of a request, trailing slash ignored"""
    path = request.url.path.rstrip("/") or "/"
    return f"{request.method} {path}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Enforces endpoint rate limits before the endpoint runs.

    The limiter is read from ``app.state.rate_limiter`` so it follows the
    application lifespan.
    """

    def __init__(self, app: ASGIApp, route_limits: Optional[Mapping[str, RouteRateLimit]] = None):
        super().__init__(app)
        self.route_limits = dict(ROUTE_RATE_LIMITS if route_limits is None else route_limits)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        rule = self.route_limits.get(endpoint_key(request))
        if rule is None:
            return await call_next(request)

        identifier = get_client_ip(request)
        try:
            rate_limiter: RateLimiter = request.app.state.rate_limiter
            result = await rate_limiter.check(
                rule.policy_type, identifier, rule.window_seconds, rule.limit
            )
        except Exception as e:
            logger.error(
                f"Rate limiting error for {identifier} on {request.method} {request.url.path}: {e!r}"
            )
            return JSONResponse(
                status_code=503,
                content={
                    "error": {
                        "code": "RATE_LIMITER_UNAVAILABLE",
                        "message": "Rate limiting service temporarily unavailable, please try again later",
                    }
                },
            )

        headers = rate_limit_headers(result)

        if not result.is_allowed:
            logger.warning(
                f"Rate limit exceeded for {identifier} on {request.method} {request.url.path} "
                f"({rule.policy_type} {result.current_count}/{result.limit})"
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": {
                        "code": "RATE_LIMIT_EXCEEDED",
                        "message": rate_limit_message(result),
                        "rate_limit": rate_limit_details(result),
                    }
                },
                headers={**headers, "Retry-After": str(result.remaining_seconds)},
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response

