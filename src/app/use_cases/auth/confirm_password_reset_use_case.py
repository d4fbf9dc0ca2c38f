"""
Confirm Password Reset Use Case

Redeems a password reset OTP and sets the new password (reset password).
"""

import logging

from src.app.services.rate_limiter import RateLimiter
from src.app.services.unit_of_work import UnitOfWork
from src.app.utils.audit import audit
from src.app.utils.crypto import hash_identifier, hash_password, normalize_email, verify_otp
from src.app.utils.password_policy import password_policy_violations
from src.core.result import Error, Result, Return
from src.domain.base import utcnow
from src.domain.entities import RateLimitPolicyType
from .dtos import ConfirmPasswordResetCommand, ConfirmPasswordResetResponse
from .throttle import check_account_throttle

INVALID_OTP_MESSAGE = "Invalid OTP or expired"


class ConfirmPasswordResetUseCase:
    """
    Use case for redeeming a password reset OTP.

    Business Rules:
    - Throttled per account (sha256 of the normalized email)
    - New password must satisfy the password policy
    - The latest unused OTP of the user is the only redeemable one
    - No unused OTP: TOKEN_ALREADY_USED when the submitted OTP matches the
      latest (used) record, INVALID_OR_EXPIRED_TOKEN otherwise
    - Expired OTP -> TOKEN_EXPIRED; HMAC mismatch -> INVALID_OR_EXPIRED_TOKEN
      and the record stays unused
    - Success marks the OTP used, rehashes the password and bumps
      token_version in one transaction
    """

    def __init__(
        self,
        uow: UnitOfWork,
        rate_limiter: RateLimiter,
        otp_secret: str,
        bcrypt_rounds: int = 12,
        rate_limit_policy: str = RateLimitPolicyType.password_reset.value,
    ):
        self.uow = uow
        self.rate_limiter = rate_limiter
        self.otp_secret = otp_secret
        self.bcrypt_rounds = bcrypt_rounds
        self.rate_limit_policy = rate_limit_policy

    async def execute(
        self, command: ConfirmPasswordResetCommand
    ) -> Result[ConfirmPasswordResetResponse]:
        email = normalize_email(command.email)
        context = command.context

        error = await check_account_throttle(
            self.rate_limiter, self.rate_limit_policy, hash_identifier(email), "password reset"
        )
        if error:
            audit(
                "password_reset_throttled",
                ip=context.ip,
                user_agent=context.user_agent,
                level=logging.WARNING,
            )
            return Return.err(error)

        reasons = password_policy_violations(command.new_password)
        if reasons:
            return Return.err(
                Error("WEAK_PASSWORD", ", ".join(reasons), details={"reasons": reasons})
            )

        async with self.uow:
            user = await self.uow.users.get_by_email(email)
            if user is None:
                audit(
                    "password_reset_failed",
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                    reason="unknown_email",
                )
                return Return.err(Error("INVALID_OR_EXPIRED_TOKEN", INVALID_OTP_MESSAGE))

            record = await self.uow.password_reset_otps.get_latest_unused_for_user(user.id)

            if record is None:
                latest = await self.uow.password_reset_otps.get_latest_for_user(user.id)
                if latest is not None and verify_otp(
                    command.otp, self.otp_secret, latest.salt, latest.otp_hash
                ):
                    audit(
                        "password_reset_failed",
                        user_id=user.id,
                        ip=context.ip,
                        user_agent=context.user_agent,
                        level=logging.WARNING,
                        reason="already_used",
                    )
                    return Return.err(Error("TOKEN_ALREADY_USED", "OTP has already been used"))

                audit(
                    "password_reset_failed",
                    user_id=user.id,
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                    reason="no_active_otp",
                )
                return Return.err(Error("INVALID_OR_EXPIRED_TOKEN", INVALID_OTP_MESSAGE))

            now = utcnow()
            if record.expires_at < now:
                audit(
                    "password_reset_failed",
                    user_id=user.id,
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                    reason="expired",
                )
                return Return.err(
                    Error("TOKEN_EXPIRED", "OTP has expired. Please request a new one.")
                )

            if not verify_otp(command.otp, self.otp_secret, record.salt, record.otp_hash):
                audit(
                    "password_reset_failed",
                    user_id=user.id,
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                    reason="otp_mismatch",
                )
                return Return.err(Error("INVALID_OR_EXPIRED_TOKEN", INVALID_OTP_MESSAGE))

            record.used_at = now
            await self.uow.password_reset_otps.update(record)

            user.password_hash = hash_password(command.new_password, self.bcrypt_rounds)
            user.token_version = user.token_version + 1
            await self.uow.users.update(user)

            await self.uow.commit()

        audit(
            "password_reset_success",
            user_id=user.id,
            ip=context.ip,
            user_agent=context.user_agent,
            token_version=user.token_version,
        )

        return Return.ok(ConfirmPasswordResetResponse(email=user.email, success=True))
