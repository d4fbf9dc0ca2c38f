"""
Resend Use Cases

Replace outstanding email verification tokens and password reset OTPs.
Every resend invalidates the user's unused records before minting a new one
and is limited to 3 per 24 hours (per email for verification, per user for
password reset).
"""

import logging

from src.app.services.mail_queue import IMailQueue, SendResetOtpEmailJob, SendVerificationEmailJob
from src.app.services.rate_limiter import RateLimiter
from src.app.services.unit_of_work import UnitOfWork
from src.app.utils.audit import audit
from src.app.utils.crypto import (
    generate_numeric_otp,
    generate_verification_token,
    hash_identifier,
    hash_otp,
    normalize_email,
)
from src.core.result import Error, Result, Return
from src.domain.base import utcnow
from src.domain.entities import EmailVerificationToken, PasswordResetOtp, RateLimitPolicyType
from .dtos import RequestContext, ResendVerificationResponse
from .register_use_case import VERIFICATION_TOKEN_TTL, build_verify_url
from .request_password_reset_use_case import OTP_LENGTH, OTP_TTL
from .throttle import check_account_throttle

GENERIC_RESEND_MESSAGE = "If the email is registered, a new message has been sent"


class ResendVerificationUseCase:
    """
    Use case for resending the registration verification email.

    Business Rules:
    - Throttled under resend_register, keyed by sha256 of the email
    - Unknown email -> generic success, nothing sent
    - Already verified -> ALREADY_VERIFIED
    - Unused tokens are invalidated before a new 5 minute token is minted
    """

    def __init__(
        self,
        uow: UnitOfWork,
        mail_queue: IMailQueue,
        rate_limiter: RateLimiter,
        app_base_url: str,
    ):
        self.uow = uow
        self.mail_queue = mail_queue
        self.rate_limiter = rate_limiter
        self.app_base_url = app_base_url

    async def execute(
        self, email: str, context: RequestContext = RequestContext()
    ) -> Result[ResendVerificationResponse]:
        email = normalize_email(email)

        error = await check_account_throttle(
            self.rate_limiter,
            RateLimitPolicyType.resend_register.value,
            f"resend_register:{hash_identifier(email)}",
            "resend",
        )
        if error:
            audit(
                "resend_verification_throttled",
                ip=context.ip,
                user_agent=context.user_agent,
                level=logging.WARNING,
            )
            return Return.err(error)

        async with self.uow:
            user = await self.uow.users.get_by_email(email)
            if user is None:
                audit(
                    "resend_verification_unknown_email",
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                )
                return Return.ok(
                    ResendVerificationResponse(
                        email=email, sent=True, message=GENERIC_RESEND_MESSAGE
                    )
                )

            if user.verified:
                return Return.err(Error("ALREADY_VERIFIED", "Email already verified"))

            now = utcnow()
            await self.uow.email_verification_tokens.invalidate_unused_for_user(user.id, now)

            token, token_hash = generate_verification_token()
            await self.uow.email_verification_tokens.create(
                EmailVerificationToken(
                    user_id=user.id,
                    token_hash=token_hash,
                    expires_at=now + VERIFICATION_TOKEN_TTL,
                )
            )
            await self.uow.commit()

        await self.mail_queue.enqueue_verification_email(
            SendVerificationEmailJob(
                to_email=user.email,
                verify_url=build_verify_url(self.app_base_url, token),
            )
        )

        audit(
            "verification_email_resent",
            user_id=user.id,
            ip=context.ip,
            user_agent=context.user_agent,
        )

        return Return.ok(
            ResendVerificationResponse(
                email=user.email, sent=True, message="Verification email sent successfully"
            )
        )


class ResendPasswordResetOtpUseCase:
    """
    Use case for resending the password reset OTP.

    Business Rules:
    - Unknown email -> generic success, nothing sent
    - Throttled under resend_password_reset, keyed by user id
    - User must have requested a reset before (NO_PASSWORD_RESET_REQUEST)
    - Unused OTPs are invalidated before a new 5 minute OTP is minted
    """

    def __init__(
        self,
        uow: UnitOfWork,
        mail_queue: IMailQueue,
        rate_limiter: RateLimiter,
        otp_secret: str,
        app_name: str,
    ):
        self.uow = uow
        self.mail_queue = mail_queue
        self.rate_limiter = rate_limiter
        self.otp_secret = otp_secret
        self.app_name = app_name

    async def execute(
        self, email: str, context: RequestContext = RequestContext()
    ) -> Result[ResendVerificationResponse]:
        email = normalize_email(email)

        async with self.uow:
            user = await self.uow.users.get_by_email(email)
            if user is None:
                audit(
                    "resend_password_reset_unknown_email",
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                )
                return Return.ok(
                    ResendVerificationResponse(
                        email=email, sent=True, message=GENERIC_RESEND_MESSAGE
                    )
                )

            error = await check_account_throttle(
                self.rate_limiter,
                RateLimitPolicyType.resend_password_reset.value,
                str(user.id),
                "resend",
            )
            if error:
                audit(
                    "resend_password_reset_throttled",
                    user_id=user.id,
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                )
                return Return.err(error)

            previous = await self.uow.password_reset_otps.get_latest_for_user(user.id)
            if previous is None:
                audit(
                    "resend_password_reset_without_request",
                    user_id=user.id,
                    ip=context.ip,
                    user_agent=context.user_agent,
                    level=logging.WARNING,
                )
                return Return.err(
                    Error(
                        "NO_PASSWORD_RESET_REQUEST",
                        "No password reset request found. Please use forgot password first.",
                    )
                )

            now = utcnow()
            await self.uow.password_reset_otps.invalidate_unused_for_user(user.id, now)

            otp = generate_numeric_otp(OTP_LENGTH)
            otp_hash, salt = hash_otp(otp, self.otp_secret)
            await self.uow.password_reset_otps.create(
                PasswordResetOtp(
                    user_id=user.id,
                    otp_hash=otp_hash,
                    salt=salt,
                    expires_at=now + OTP_TTL,
                )
            )
            await self.uow.commit()

        await self.mail_queue.enqueue_reset_otp_email(
            SendResetOtpEmailJob(to_email=user.email, otp=otp, app_name=self.app_name)
        )

        audit(
            "password_reset_otp_resent",
            user_id=user.id,
            ip=context.ip,
            user_agent=context.user_agent,
        )

        return Return.ok(
            ResendVerificationResponse(
                email=user.email, sent=True, message="Password reset OTP email sent successfully"
            )
        )
