"""
Verify Email Use Case

Redeems an email verification token.
"""

import logging

from src.app.services.unit_of_work import UnitOfWork
from src.app.utils.audit import audit
from src.app.utils.crypto import hash_token
from src.core.result import Error, Result, Return
from src.domain.base import utcnow
from .dtos import RequestContext, VerifyEmailResponse


class VerifyEmailUseCase:
    """
    Use case for email verification.

    Business Rules:
    - Token is looked up by its SHA-256 hash
    - Absent -> INVALID_OR_EXPIRED_TOKEN, used -> TOKEN_ALREADY_USED,
      expired -> TOKEN_EXPIRED (checked in that order)
    - Success marks the token used and the user verified
    - An already verified user is not written again
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(
        self, token: str, context: RequestContext = RequestContext()
    ) -> Result[VerifyEmailResponse]:
        async with self.uow:
            record = await self.uow.email_verification_tokens.get_by_token_hash(hash_token(token))

            if record is None:
                audit(
                    "verify_email_failed",
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                    reason="invalid_token",
                )
                return Return.err(
                    Error("INVALID_OR_EXPIRED_TOKEN", "Invalid or expired verification token")
                )

            if record.used_at is not None:
                audit(
                    "verify_email_failed",
                    user_id=record.user_id,
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                    reason="already_used",
                )
                return Return.err(
                    Error("TOKEN_ALREADY_USED", "Verification token has already been used")
                )

            now = utcnow()
            if record.expires_at < now:
                audit(
                    "verify_email_failed",
                    user_id=record.user_id,
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                    reason="expired",
                )
                return Return.err(
                    Error(
                        "TOKEN_EXPIRED",
                        "Verification token has expired. Please request a new verification email.",
                    )
                )

            user = await self.uow.users.get_by_id(record.user_id)
            if user is None:
                return Return.err(
                    Error("INVALID_OR_EXPIRED_TOKEN", "Invalid or expired verification token")
                )

            record.used_at = now
            await self.uow.email_verification_tokens.update(record)

            if not user.verified:
                user.verified = True
                await self.uow.users.update(user)

            await self.uow.commit()

        audit("verify_email_success", user_id=user.id, ip=context.ip, user_agent=context.user_agent)

        return Return.ok(VerifyEmailResponse(email=user.email, verified=True))
