"""
Login Use Case

Authenticates a verified user, drives the account lockout state machine and
mints the session token.
"""

import logging
from typing import Optional

from src.api.utils.jwt import generate_jwt
from src.app.services.unit_of_work import UnitOfWork
from src.app.utils.audit import audit
from src.app.utils.crypto import dummy_password_hash, normalize_email, verify_password
from src.core.result import Error, Result, Return
from src.domain.base import utcnow
from src.domain.lockout import AccountLockout
from .dtos import LoginCommand, LoginResponse


class LoginUseCase:
    """
    Use case for login and session token issuance.

    Check order:
    1. Unknown email -> INVALID_CREDENTIALS (existence is not revealed)
    2. Unverified -> NOT_VERIFIED
    3. Lockout active -> ACCOUNT_LOCKED, password is not compared
    4. Wrong password -> lockout failure transition, INVALID_CREDENTIALS
    5. Correct password -> lockout success transition (write only when
       attempts > 0), session token with the stored token_version

    Nonexistent and unverified accounts do not consume lockout attempts.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        lockout: Optional[AccountLockout] = None,
        jwt_ttl: Optional[str] = None,
        bcrypt_rounds: int = 12,
    ):
        self.uow = uow
        self.lockout = lockout or AccountLockout()
        self.jwt_ttl = jwt_ttl
        self.bcrypt_rounds = bcrypt_rounds

    async def execute(self, command: LoginCommand) -> Result[LoginResponse]:
        email = normalize_email(command.email)
        context = command.context

        async with self.uow:
            user = await self.uow.users.get_by_email(email)
            if user is None:
                # Same bcrypt cost as a wrong password
                verify_password(command.password, dummy_password_hash(self.bcrypt_rounds))
                audit(
                    "login_failed",
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                    reason="unknown_email",
                )
                return Return.err(Error("INVALID_CREDENTIALS", "Invalid email or password"))

            if not user.verified:
                audit(
                    "login_failed",
                    user_id=user.id,
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                    reason="not_verified",
                )
                return Return.err(
                    Error("NOT_VERIFIED", "Please verify your email before logging in")
                )

            now = utcnow()
            status = self.lockout.status(user, now)
            if status.is_locked:
                locked_until = status.locked_until.isoformat()
                audit(
                    "login_locked",
                    user_id=user.id,
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                    locked_until=locked_until,
                )
                return Return.err(
                    Error(
                        "ACCOUNT_LOCKED",
                        f"Account is locked until {locked_until}",
                        details={"locked_until": locked_until},
                    )
                )

            if not verify_password(command.password, user.password_hash):
                status = self.lockout.register_failure(user, now)
                await self.uow.users.update_lockout(
                    user.id, user.lockout_attempts, user.locked_until
                )
                await self.uow.commit()

                audit(
                    "login_failed",
                    user_id=user.id,
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                    reason="invalid_password",
                    lockout_attempts=status.lockout_attempts,
                    locked=status.is_locked,
                )
                return Return.err(Error("INVALID_CREDENTIALS", "Invalid email or password"))

            if self.lockout.register_success(user):
                await self.uow.users.update_lockout(user.id, 0, None)
                await self.uow.commit()

            # Built before the block exits: leaving it without a commit rolls
            # back the session and expires the loaded user
            access_token = generate_jwt(user, self.jwt_ttl)
            role = user.role.value if hasattr(user.role, "value") else user.role
            response = LoginResponse(
                user_id=str(user.id),
                email=user.email,
                role=role,
                access_token=access_token,
            )

        audit(
            "login_success", user_id=response.user_id, ip=context.ip, user_agent=context.user_agent
        )

        return Return.ok(response)
