"""
Per-account throttling shared by the password reset and resend use cases.

The HTTP gate limits by client address; these checks limit by account so a
single mailbox cannot be flooded from many addresses.
"""

from typing import Optional

from src.app.services.rate_limiter import (
    RateLimiter,
    describe_wait,
    rate_limit_details,
)
from src.core.result import Error


async def check_account_throttle(
    rate_limiter: RateLimiter, policy_type: str, identifier: str, action: str
) -> Optional[Error]:
    """
    Count one attempt of ``action`` for ``identifier``.

    Returns:
        Error(RATE_LIMIT_EXCEEDED) when over quota, None otherwise
    """
    result = await rate_limiter.check(policy_type, identifier)
    if result.is_allowed:
        return None

    return Error(
        "RATE_LIMIT_EXCEEDED",
        f"Too many {action} attempts. Please try again in {describe_wait(result.remaining_seconds)}.",
        details={"rate_limit": rate_limit_details(result)},
    )
