"""
Request Password Reset Use Case

Issues a 6-digit password reset OTP and mails it (forgot password).
"""

import logging
from datetime import timedelta

from src.app.services.mail_queue import IMailQueue, SendResetOtpEmailJob
from src.app.services.rate_limiter import RateLimiter
from src.app.services.unit_of_work import UnitOfWork
from src.app.utils.audit import audit
from src.app.utils.crypto import generate_numeric_otp, hash_identifier, hash_otp, normalize_email
from src.core.result import Result, Return
from src.domain.base import utcnow
from src.domain.entities import PasswordResetOtp, RateLimitPolicyType
from .dtos import RequestContext, RequestPasswordResetResponse
from .throttle import check_account_throttle

OTP_TTL = timedelta(minutes=5)
OTP_LENGTH = 6


class RequestPasswordResetUseCase:
    """
    Use case for requesting a password reset OTP.

    Business Rules:
    - Throttled per account (sha256 of the normalized email)
    - Unknown emails get the same success response; nothing is stored or sent
    - OTP is stored as a salted HMAC-SHA256, valid for 5 minutes
    - The raw OTP only travels in the mail job
    """

    def __init__(
        self,
        uow: UnitOfWork,
        mail_queue: IMailQueue,
        rate_limiter: RateLimiter,
        otp_secret: str,
        app_name: str,
        rate_limit_policy: str = RateLimitPolicyType.password_reset.value,
    ):
        self.uow = uow
        self.mail_queue = mail_queue
        self.rate_limiter = rate_limiter
        self.otp_secret = otp_secret
        self.app_name = app_name
        self.rate_limit_policy = rate_limit_policy

    async def execute(
        self, email: str, context: RequestContext = RequestContext()
    ) -> Result[RequestPasswordResetResponse]:
        email = normalize_email(email)

        error = await check_account_throttle(
            self.rate_limiter, self.rate_limit_policy, hash_identifier(email), "password reset"
        )
        if error:
            audit(
                "password_reset_request_throttled",
                ip=context.ip,
                user_agent=context.user_agent,
                level=logging.WARNING,
            )
            return Return.err(error)

        async with self.uow:
            user = await self.uow.users.get_by_email(email)
            if user is None:
                audit(
                    "password_reset_request_unknown_email",
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                )
                return Return.ok(RequestPasswordResetResponse(email=email, sent=True))

            otp = generate_numeric_otp(OTP_LENGTH)
            otp_hash, salt = hash_otp(otp, self.otp_secret)
            await self.uow.password_reset_otps.create(
                PasswordResetOtp(
                    user_id=user.id,
                    otp_hash=otp_hash,
                    salt=salt,
                    expires_at=utcnow() + OTP_TTL,
                )
            )
            await self.uow.commit()

        await self.mail_queue.enqueue_reset_otp_email(
            SendResetOtpEmailJob(to_email=user.email, otp=otp, app_name=self.app_name)
        )

        audit(
            "password_reset_requested",
            user_id=user.id,
            ip=context.ip,
            user_agent=context.user_agent,
        )

        return Return.ok(RequestPasswordResetResponse(email=user.email, sent=True))
