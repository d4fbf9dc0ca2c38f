from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest

from src.app.use_cases.auth import RegisterCommand, RegisterUseCase
from src.app.utils.crypto import hash_token, verify_password
from src.domain.base import utcnow
from src.domain.entities import User, UserRole


@pytest.fixture
def use_case(mock_uow, mock_mail_queue):
    return RegisterUseCase(
        mock_uow, mock_mail_queue, app_base_url="https://app.example.com/", bcrypt_rounds=4
    )


@pytest.mark.asyncio
async def test_register_creates_unverified_user_token_and_mail(use_case, mock_uow, mock_mail_queue):
    """Register a@b.com: one user, one token valid 5 minutes, one mail job with the raw token"""
    result = await use_case.execute(RegisterCommand(email="a@b.com", password="Str0ng!Pass"))

    assert result.is_ok()
    assert result.value.email == "a@b.com"

    mock_uow.users.create.assert_called_once()
    user = mock_uow.users.create.call_args.args[0]
    assert user.verified is False
    assert user.role == UserRole.user
    assert user.token_version == 1
    assert user.lockout_attempts == 0
    assert verify_password("Str0ng!Pass", user.password_hash)
    assert result.value.user_id == str(user.id)

    mock_uow.email_verification_tokens.create.assert_called_once()
    token_record = mock_uow.email_verification_tokens.create.call_args.args[0]
    assert token_record.user_id == user.id
    assert token_record.used_at is None
    expected_expiry = utcnow() + timedelta(minutes=5)
    assert abs((token_record.expires_at - expected_expiry).total_seconds()) < 5

    mock_uow.commit.assert_called_once()

    mock_mail_queue.enqueue_verification_email.assert_called_once()
    job = mock_mail_queue.enqueue_verification_email.call_args.args[0]
    assert job.to_email == "a@b.com"
    url = urlparse(job.verify_url)
    assert f"{url.scheme}://{url.netloc}{url.path}" == "https://app.example.com/verify-email"
    raw_token = parse_qs(url.query)["token"][0]
    assert raw_token != token_record.token_hash
    assert hash_token(raw_token) == token_record.token_hash


@pytest.mark.asyncio
async def test_register_normalizes_email(use_case, mock_uow):
    result = await use_case.execute(
        RegisterCommand(email="  New.User@Example.COM ", password="Str0ng!Pass")
    )

    assert result.is_ok()
    mock_uow.users.get_by_email.assert_called_once_with("new.user@example.com")
    assert mock_uow.users.create.call_args.args[0].email == "new.user@example.com"


@pytest.mark.asyncio
async def test_register_duplicate_email(use_case, mock_uow, mock_mail_queue):
    """Second registration of the same normalized email creates nothing"""
    mock_uow.users.get_by_email.return_value = User(email="a@b.com", password_hash="hash")

    result = await use_case.execute(RegisterCommand(email="A@B.com", password="Str0ng!Pass"))

    assert result.is_err()
    assert result.error.code == "EMAIL_ALREADY_EXISTS"
    mock_uow.users.create.assert_not_called()
    mock_uow.email_verification_tokens.create.assert_not_called()
    mock_uow.commit.assert_not_called()
    mock_mail_queue.enqueue_verification_email.assert_not_called()


@pytest.mark.asyncio
async def test_register_weak_password(use_case, mock_uow, mock_mail_queue):
    result = await use_case.execute(RegisterCommand(email="a@b.com", password="weak"))

    assert result.is_err()
    assert result.error.code == "WEAK_PASSWORD"
    assert "Password must be at least 8 characters" in result.error.details["reasons"]
    assert len(result.error.details["reasons"]) == 4
    mock_uow.users.create.assert_not_called()
    mock_mail_queue.enqueue_verification_email.assert_not_called()


@pytest.mark.asyncio
async def test_register_mail_queue_failure_propagates(use_case, mock_mail_queue):
    mock_mail_queue.enqueue_verification_email.side_effect = ConnectionError("queue down")

    with pytest.raises(ConnectionError):
        await use_case.execute(RegisterCommand(email="a@b.com", password="Str0ng!Pass"))
