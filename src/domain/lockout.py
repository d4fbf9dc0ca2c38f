"""
Account Lockout State Machine

Two states per user record:
- Unlocked: locked_until is null or in the past
- Locked: locked_until is in the future

The machine is pure: it computes the next lockout fields and leaves
persistence to the caller.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from src.domain.entities import User

MAX_LOCKOUT_ATTEMPTS = 5
LOCKOUT_DURATION = timedelta(minutes=15)


@dataclass(frozen=True)
class LockoutStatus:
    """Snapshot of a user's lockout state at a point in time"""

    is_locked: bool
    lockout_attempts: int
    locked_until: Optional[datetime]
    remaining_attempts: int
    max_attempts: int


class AccountLockout:
    """
    Failed-login lockout rules.

    Transitions:
    - failure, attempts + 1 <  max: attempts += 1
    - failure, attempts + 1 >= max: attempts = max, locked_until = now + duration
    - success with attempts > 0: attempts = 0, locked_until = None
    - success with attempts == 0: no change (no write needed)
    """

    def __init__(
        self,
        max_attempts: int = MAX_LOCKOUT_ATTEMPTS,
        lockout_duration: timedelta = LOCKOUT_DURATION,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.lockout_duration = lockout_duration

    def status(self, user: User, now: datetime) -> LockoutStatus:
        is_locked = user.locked_until is not None and user.locked_until > now
        return LockoutStatus(
            is_locked=is_locked,
            lockout_attempts=user.lockout_attempts,
            locked_until=user.locked_until,
            remaining_attempts=max(0, self.max_attempts - user.lockout_attempts),
            max_attempts=self.max_attempts,
        )

    def register_failure(self, user: User, now: datetime) -> LockoutStatus:
        """Apply the failed-attempt transition to ``user`` and return the new state."""
        attempts = user.lockout_attempts + 1

        if attempts >= self.max_attempts:
            user.lockout_attempts = self.max_attempts
            user.locked_until = now + self.lockout_duration
        else:
            user.lockout_attempts = attempts

        return self.status(user, now)

    def register_success(self, user: User) -> bool:
        """
        Apply the successful-login transition to ``user``.

        Returns:
            True if the user changed and must be persisted
        """
        if user.lockout_attempts == 0:
            return False

        user.lockout_attempts = 0
        user.locked_until = None
        return True
