"""
Register Use Case

Creates an unverified account and mails a verification link.
"""

from datetime import timedelta
from urllib.parse import quote

from src.app.services.mail_queue import IMailQueue, SendVerificationEmailJob
from src.app.services.unit_of_work import UnitOfWork
from src.app.utils.audit import audit
from src.app.utils.crypto import generate_verification_token, hash_password, normalize_email
from src.app.utils.password_policy import password_policy_violations
from src.core.result import Error, Result, Return
from src.domain.base import utcnow
from src.domain.entities import EmailVerificationToken, User, UserRole
from .dtos import RegisterCommand, RegisterResponse

VERIFICATION_TOKEN_TTL = timedelta(minutes=5)


def build_verify_url(app_base_url: str, token: str) -> str:
    return f"{app_base_url.rstrip('/')}/verify-email?token={quote(token, safe='')}"


class RegisterUseCase:
    """
    Register Use Case

    Business Logic:
    1. Normalize email (trim, lowercase)
    2. Reject if the email is already registered (EMAIL_ALREADY_EXISTS)
    3. Enforce password policy (WEAK_PASSWORD, all reasons reported)
    4. Hash password with bcrypt
    5. Create User (role=user, verified=False, token_version=1)
    6. Mint verification token (raw 32-byte hex, SHA-256 stored, 5 minutes)
    7. Commit, then enqueue the verification mail with the raw token link
    """

    def __init__(
        self,
        uow: UnitOfWork,
        mail_queue: IMailQueue,
        app_base_url: str,
        bcrypt_rounds: int = 12,
    ):
        self.uow = uow
        self.mail_queue = mail_queue
        self.app_base_url = app_base_url
        self.bcrypt_rounds = bcrypt_rounds

    async def execute(self, command: RegisterCommand) -> Result[RegisterResponse]:
        email = normalize_email(command.email)
        context = command.context

        async with self.uow:
            existing_user = await self.uow.users.get_by_email(email)
            if existing_user:
                audit(
                    "register_conflict",
                    user_id=existing_user.id,
                    ip=context.ip,
                    user_agent=context.user_agent,
                )
                return Return.err(Error("EMAIL_ALREADY_EXISTS", "Email already registered"))

            reasons = password_policy_violations(command.password)
            if reasons:
                return Return.err(
                    Error("WEAK_PASSWORD", ", ".join(reasons), details={"reasons": reasons})
                )

            user = User(
                email=email,
                password_hash=hash_password(command.password, self.bcrypt_rounds),
                role=UserRole.user,
                verified=False,
                lockout_attempts=0,
                token_version=1,
            )
            user = await self.uow.users.create(user)

            token, token_hash = generate_verification_token()
            await self.uow.email_verification_tokens.create(
                EmailVerificationToken(
                    user_id=user.id,
                    token_hash=token_hash,
                    expires_at=utcnow() + VERIFICATION_TOKEN_TTL,
                )
            )

            await self.uow.commit()

        await self.mail_queue.enqueue_verification_email(
            SendVerificationEmailJob(
                to_email=user.email,
                verify_url=build_verify_url(self.app_base_url, token),
            )
        )

        audit("register_success", user_id=user.id, ip=context.ip, user_agent=context.user_agent)

        return Return.ok(RegisterResponse(user_id=str(user.id), email=user.email))
