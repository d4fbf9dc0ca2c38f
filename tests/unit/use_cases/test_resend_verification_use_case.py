from uuid import uuid4

import pytest

from src.app.use_cases.auth import ResendPasswordResetOtpUseCase, ResendVerificationUseCase
from src.app.utils.crypto import hash_identifier, hash_token, verify_otp
from src.app.services.rate_limiter import RateLimiter
from src.domain.entities import PasswordResetOtp, User

OTP_SECRET = "test-otp-secret"


def make_user(verified=False) -> User:
    return User(id=uuid4(), email="user@example.com", password_hash="hash", verified=verified)


# ============================================================================
# Registration verification
# ============================================================================


@pytest.fixture
def resend_verification(mock_uow, mock_mail_queue, rate_limiter):
    return ResendVerificationUseCase(
        mock_uow, mock_mail_queue, rate_limiter, app_base_url="https://app.example.com"
    )


@pytest.mark.asyncio
async def test_resend_verification_replaces_outstanding_tokens(
    resend_verification, mock_uow, mock_mail_queue
):
    user = make_user()
    mock_uow.users.get_by_email.return_value = user

    result = await resend_verification.execute("User@Example.com")

    assert result.is_ok()
    assert result.value.sent is True
    assert result.value.message == "Verification email sent successfully"

    mock_uow.email_verification_tokens.invalidate_unused_for_user.assert_called_once()
    assert mock_uow.email_verification_tokens.invalidate_unused_for_user.call_args.args[0] == user.id
    record = mock_uow.email_verification_tokens.create.call_args.args[0]
    job = mock_mail_queue.enqueue_verification_email.call_args.args[0]
    raw_token = job.verify_url.split("token=")[1]
    assert hash_token(raw_token) == record.token_hash
    mock_uow.commit.assert_called_once()


@pytest.mark.asyncio
async def test_resend_verification_already_verified(resend_verification, mock_uow, mock_mail_queue):
    mock_uow.users.get_by_email.return_value = make_user(verified=True)

    result = await resend_verification.execute("user@example.com")

    assert result.error.code == "ALREADY_VERIFIED"
    mock_mail_queue.enqueue_verification_email.assert_not_called()


@pytest.mark.asyncio
async def test_resend_verification_unknown_email(resend_verification, mock_uow, mock_mail_queue):
    result = await resend_verification.execute("ghost@example.com")

    assert result.is_ok()
    mock_uow.email_verification_tokens.create.assert_not_called()
    mock_mail_queue.enqueue_verification_email.assert_not_called()


@pytest.mark.asyncio
async def test_resend_verification_three_per_day_per_email(
    resend_verification, mock_uow, mock_mail_queue, redis_client
):
    mock_uow.users.get_by_email.return_value = make_user()

    for _ in range(3):
        assert (await resend_verification.execute("user@example.com")).is_ok()

    result = await resend_verification.execute("user@example.com")

    assert result.error.code == "RATE_LIMIT_EXCEEDED"
    assert result.error.details["rate_limit"]["policy_type"] == "resend_register"
    assert mock_mail_queue.enqueue_verification_email.call_count == 3

    key = RateLimiter.generate_key(
        "resend_register", f"resend_register:{hash_identifier('user@example.com')}"
    )
    assert await redis_client.get(key) == "4"
    assert 86000 < await redis_client.ttl(key) <= 86400


# ============================================================================
# Password reset OTP
# ============================================================================


@pytest.fixture
def resend_password_reset(mock_uow, mock_mail_queue, rate_limiter):
    return ResendPasswordResetOtpUseCase(
        mock_uow, mock_mail_queue, rate_limiter, otp_secret=OTP_SECRET, app_name="Account Service"
    )


@pytest.mark.asyncio
async def test_resend_password_reset_replaces_outstanding_otps(
    resend_password_reset, mock_uow, mock_mail_queue
):
    user = make_user(verified=True)
    mock_uow.users.get_by_email.return_value = user
    mock_uow.password_reset_otps.get_latest_for_user.return_value = PasswordResetOtp(
        user_id=user.id, otp_hash="x", salt="y"
    )

    result = await resend_password_reset.execute("user@example.com")

    assert result.is_ok()
    assert result.value.message == "Password reset OTP email sent successfully"
    mock_uow.password_reset_otps.invalidate_unused_for_user.assert_called_once()
    record = mock_uow.password_reset_otps.create.call_args.args[0]
    job = mock_mail_queue.enqueue_reset_otp_email.call_args.args[0]
    assert verify_otp(job.otp, OTP_SECRET, record.salt, record.otp_hash)


@pytest.mark.asyncio
async def test_resend_password_reset_requires_prior_request(
    resend_password_reset, mock_uow, mock_mail_queue
):
    mock_uow.users.get_by_email.return_value = make_user(verified=True)

    result = await resend_password_reset.execute("user@example.com")

    assert result.error.code == "NO_PASSWORD_RESET_REQUEST"
    mock_uow.password_reset_otps.create.assert_not_called()
    mock_mail_queue.enqueue_reset_otp_email.assert_not_called()


@pytest.mark.asyncio
async def test_resend_password_reset_three_per_day_per_user(
    resend_password_reset, mock_uow, redis_client
):
    user = make_user(verified=True)
    mock_uow.users.get_by_email.return_value = user
    mock_uow.password_reset_otps.get_latest_for_user.return_value = PasswordResetOtp(
        user_id=user.id, otp_hash="x", salt="y"
    )

    for _ in range(3):
        assert (await resend_password_reset.execute("user@example.com")).is_ok()

    result = await resend_password_reset.execute("user@example.com")

    assert result.error.code == "RATE_LIMIT_EXCEEDED"
    key = RateLimiter.generate_key("resend_password_reset", str(user.id))
    assert await redis_client.get(key) == "4"


@pytest.mark.asyncio
async def test_resend_password_reset_unknown_email(resend_password_reset, mock_mail_queue):
    result = await resend_password_reset.execute("ghost@example.com")

    assert result.is_ok()
    mock_mail_queue.enqueue_reset_otp_email.assert_not_called()
