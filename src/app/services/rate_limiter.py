"""
Rate Limiter

Fixed-window counters over the counter store. Each (policy, identifier) pair
owns one counter that is created by the first request of a window, counts
every request in that window and disappears when the window elapses.

A burst straddling a window boundary can admit up to 2x the limit; windows
are short and the guarded operations are not capacity-critical.

Counter store failures fail open by default: the request is allowed and the
degradation is logged at error level.
"""

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Dict, Mapping, Optional

from pydantic import BaseModel

from src.app.services.counter_store import CounterStoreError, ICounterStore
from src.domain.entities import RateLimitPolicyType

logger = logging.getLogger(__name__)

KEY_NAMESPACE = "rate-limit"
WARNING_THRESHOLD = 0.8


@dataclass(frozen=True)
class RateLimitPolicy:
    """Window length and request quota of one policy"""

    window_seconds: int
    limit: int


class RateLimitResult(BaseModel):
    """Outcome of a single rate limit check (never persisted)"""

    policy_type: str
    is_allowed: bool
    current_count: int
    limit: int
    window_seconds: int
    remaining_seconds: int
    reset_at: datetime

    @property
    def remaining(self) -> int:
        """Requests still allowed in the current window"""
        return max(0, self.limit - self.current_count)


class RateLimiterUnavailableError(Exception):
    """Counter store failed and the limiter is configured to fail closed"""


_DEVELOPMENT_POLICIES: Dict[str, RateLimitPolicy] = {
    RateLimitPolicyType.general.value: RateLimitPolicy(60, 100),
    RateLimitPolicyType.sensitive.value: RateLimitPolicy(60, 30),
    RateLimitPolicyType.login.value: RateLimitPolicy(300, 5),
    RateLimitPolicyType.upload.value: RateLimitPolicy(3600, 20),
}

_PRODUCTION_POLICIES: Dict[str, RateLimitPolicy] = {
    RateLimitPolicyType.general.value: RateLimitPolicy(60, 60),
    RateLimitPolicyType.sensitive.value: RateLimitPolicy(60, 20),
    RateLimitPolicyType.login.value: RateLimitPolicy(900, 3),
    RateLimitPolicyType.upload.value: RateLimitPolicy(3600, 10),
}

# Endpoint-specific policies, identical in every environment
_SHARED_POLICIES: Dict[str, RateLimitPolicy] = {
    RateLimitPolicyType.register.value: RateLimitPolicy(3600, 5),
    RateLimitPolicyType.verify_email.value: RateLimitPolicy(300, 30),
    RateLimitPolicyType.password_reset.value: RateLimitPolicy(3600, 3),
    RateLimitPolicyType.resend_register.value: RateLimitPolicy(86400, 3),
    RateLimitPolicyType.resend_password_reset.value: RateLimitPolicy(86400, 3),
}

REQUIRED_POLICIES = (
    RateLimitPolicyType.general.value,
    RateLimitPolicyType.sensitive.value,
    RateLimitPolicyType.login.value,
    RateLimitPolicyType.upload.value,
)


def build_policies(
    environment: str, overrides: Optional[Mapping[str, Mapping]] = None
) -> Dict[str, RateLimitPolicy]:
    """
    Resolve the policy table for an environment.

    Args:
        environment: "development" selects the lenient defaults, anything
            else the production defaults
        overrides: {policy: {"window_seconds": int, "limit": int}}; partial
            entries keep the default for the missing field, unknown policy
            names define custom policies

    Raises:
        ValueError: a policy ends up missing or with a non-positive value
    """
    base = _DEVELOPMENT_POLICIES if environment == "development" else _PRODUCTION_POLICIES
    policies = {**base, **_SHARED_POLICIES}

    for name, values in (overrides or {}).items():
        current = policies.get(name)
        try:
            window = values.get("window_seconds", current.window_seconds if current else None)
            limit = values.get("limit", current.limit if current else None)
        except AttributeError:
            raise ValueError(f"Invalid rate limiter configuration for {name}: {values!r}")
        policies[name] = RateLimitPolicy(window_seconds=window, limit=limit)

    validate_policies(policies)
    return policies


def validate_policies(policies: Mapping[str, RateLimitPolicy]) -> None:
    for name in REQUIRED_POLICIES:
        if name not in policies:
            raise ValueError(f"Missing rate limiter configuration for {name}")

    for name, policy in policies.items():
        if not isinstance(policy.window_seconds, int) or not isinstance(policy.limit, int):
            raise ValueError(f"Invalid rate limiter configuration for {name}")
        if policy.window_seconds <= 0 or policy.limit <= 0:
            raise ValueError(
                f"Invalid rate limiter values for {name}: "
                f"window_seconds={policy.window_seconds}, limit={policy.limit}"
            )


class RateLimiter:
    """
    Fixed-window rate limiter.

    Business Rules:
    - Key is rate-limit:{policy}:{identifier}
    - Per-call window/limit overrides win over the policy defaults
    - is_allowed == (current_count <= limit)
    - Unknown policy names fall back to the general policy
    - Store errors fail open (allowed, count 0) unless fail_open is False
    """

    def __init__(
        self,
        store: ICounterStore,
        policies: Mapping[str, RateLimitPolicy],
        fail_open: bool = True,
    ):
        validate_policies(policies)
        self.store = store
        self.policies = dict(policies)
        self.fail_open = fail_open

    @staticmethod
    def generate_key(policy_type: str, identifier: str) -> str:
        return f"{KEY_NAMESPACE}:{policy_type}:{identifier}"

    def resolve_policy(
        self,
        policy_type: str,
        window_seconds: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> RateLimitPolicy:
        policy = self.policies.get(policy_type) or self.policies[RateLimitPolicyType.general.value]
        return RateLimitPolicy(
            window_seconds=window_seconds or policy.window_seconds,
            limit=limit or policy.limit,
        )

    def configurations(self) -> Dict[str, RateLimitPolicy]:
        return dict(self.policies)

    async def check(
        self,
        policy_type: str,
        identifier: str,
        window_seconds: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> RateLimitResult:
        """
        Count one request against (policy_type, identifier).

        Args:
            policy_type: Policy name
            identifier: Client IP, hashed email, user id...
            window_seconds: Optional override of the policy window
            limit: Optional override of the policy limit

        Returns:
            RateLimitResult for this request

        Raises:
            RateLimiterUnavailableError: store failed and fail_open is False
        """
        policy = self.resolve_policy(policy_type, window_seconds, limit)
        key = self.generate_key(policy_type, identifier)

        try:
            current_count = await self.store.increment_with_expiry(key, policy.window_seconds)
            remaining_seconds = await self.store.get_remaining_ttl(key)
        except CounterStoreError as e:
            logger.error(f"Rate limit check failed for {policy_type}:{identifier}: {e}")
            if not self.fail_open:
                raise RateLimiterUnavailableError(str(e)) from e
            return RateLimitResult(
                policy_type=policy_type,
                is_allowed=True,
                current_count=0,
                limit=policy.limit,
                window_seconds=policy.window_seconds,
                remaining_seconds=0,
                reset_at=datetime.now(UTC),
            )

        if remaining_seconds <= 0:
            # Expiry not visible yet (or just elapsed): assume a full window
            remaining_seconds = policy.window_seconds

        is_allowed = current_count <= policy.limit
        self._log_check(policy_type, identifier, current_count, policy.limit, is_allowed)

        return RateLimitResult(
            policy_type=policy_type,
            is_allowed=is_allowed,
            current_count=current_count,
            limit=policy.limit,
            window_seconds=policy.window_seconds,
            remaining_seconds=remaining_seconds,
            reset_at=datetime.now(UTC) + timedelta(seconds=remaining_seconds),
        )

    async def peek_status(
        self,
        policy_type: str,
        identifier: str,
        window_seconds: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> RateLimitResult:
        """
        Current usage of (policy_type, identifier) without counting a request.

        is_allowed reports whether one more request would be admitted.
        Store errors propagate as CounterStoreError.
        """
        policy = self.resolve_policy(policy_type, window_seconds, limit)
        key = self.generate_key(policy_type, identifier)

        try:
            current_count = await self.store.peek(key) or 0
            remaining_seconds = max(0, await self.store.get_remaining_ttl(key))
        except CounterStoreError as e:
            logger.error(f"Failed to get rate limit status for {policy_type}:{identifier}: {e}")
            raise

        return RateLimitResult(
            policy_type=policy_type,
            is_allowed=current_count < policy.limit,
            current_count=current_count,
            limit=policy.limit,
            window_seconds=policy.window_seconds,
            remaining_seconds=remaining_seconds,
            reset_at=datetime.now(UTC) + timedelta(seconds=remaining_seconds),
        )

    async def reset(self, policy_type: str, identifier: str) -> bool:
        """Delete the counter (administrative override); True if one existed"""
        deleted = await self.store.delete(self.generate_key(policy_type, identifier))
        logger.info(f"Rate limit reset for {policy_type}:{identifier}")
        return deleted

    async def is_healthy(self) -> bool:
        try:
            return await self.store.ping()
        except CounterStoreError as e:
            logger.error(f"Counter store health check failed: {e}")
            return False

    def _log_check(
        self, policy_type: str, identifier: str, current_count: int, limit: int, is_allowed: bool
    ) -> None:
        if not is_allowed:
            logger.warning(
                f"Rate limit exceeded for {policy_type}:{identifier} - {current_count}/{limit} requests"
            )
        elif current_count > limit * WARNING_THRESHOLD:
            logger.info(
                f"Rate limit warning for {policy_type}:{identifier} - {current_count}/{limit} requests"
            )


def describe_wait(remaining_seconds: int) -> str:
    """Human wait time: seconds below one minute, whole minutes (rounded up) above"""
    if remaining_seconds >= 60:
        return f"{math.ceil(remaining_seconds / 60)} minutes"
    return f"{remaining_seconds} seconds"


def rate_limit_details(result: RateLimitResult) -> dict:
    return {
        "policy_type": result.policy_type,
        "current_count": result.current_count,
        "limit": result.limit,
        "remaining_seconds": result.remaining_seconds,
        "reset_at": result.reset_at.isoformat(),
    }
