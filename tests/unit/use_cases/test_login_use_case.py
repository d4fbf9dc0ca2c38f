import json
from datetime import timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from src.api.utils.jwt import verify_jwt
from src.app.use_cases.auth import LoginCommand, LoginUseCase
from src.app.utils.crypto import dummy_password_hash, hash_password
from src.domain.base import utcnow
from src.domain.entities import User

PASSWORD = "Str0ng!Pass"
PASSWORD_HASH = hash_password(PASSWORD, rounds=4)


def make_user(**overrides) -> User:
    values = dict(
        id=uuid4(),
        email="user@example.com",
        password_hash=PASSWORD_HASH,
        verified=True,
        lockout_attempts=0,
        locked_until=None,
        token_version=3,
    )
    values.update(overrides)
    return User(**values)


@pytest.mark.asyncio
async def test_successful_login_without_prior_failures_writes_nothing(mock_uow):
    user = make_user()
    mock_uow.users.get_by_email.return_value = user

    result = await LoginUseCase(mock_uow).execute(
        LoginCommand(email="user@example.com", password=PASSWORD)
    )

    assert result.is_ok()
    assert result.value.user_id == str(user.id)
    assert result.value.role == "user"
    payload = verify_jwt(result.value.access_token)
    assert payload["sub"] == str(user.id)
    assert payload["token_version"] == 3

    mock_uow.users.update_lockout.assert_not_called()
    mock_uow.users.update.assert_not_called()
    mock_uow.commit.assert_not_called()


@pytest.mark.asyncio
async def test_successful_login_resets_previous_failures(mock_uow):
    user = make_user(lockout_attempts=3)
    mock_uow.users.get_by_email.return_value = user

    result = await LoginUseCase(mock_uow).execute(
        LoginCommand(email="user@example.com", password=PASSWORD)
    )

    assert result.is_ok()
    mock_uow.users.update_lockout.assert_called_once_with(user.id, 0, None)
    mock_uow.commit.assert_called_once()


@pytest.mark.asyncio
async def test_login_normalizes_email(mock_uow):
    mock_uow.users.get_by_email.return_value = make_user()

    await LoginUseCase(mock_uow).execute(
        LoginCommand(email="  USER@Example.COM  ", password=PASSWORD)
    )

    mock_uow.users.get_by_email.assert_called_once_with("user@example.com")


@pytest.mark.asyncio
async def test_unknown_email_is_invalid_credentials(mock_uow):
    result = await LoginUseCase(mock_uow, bcrypt_rounds=4).execute(
        LoginCommand(email="ghost@example.com", password=PASSWORD)
    )

    assert result.is_err()
    assert result.error.code == "INVALID_CREDENTIALS"
    mock_uow.users.update_lockout.assert_not_called()


@pytest.mark.asyncio
async def test_unknown_email_pays_a_password_hash_check(mock_uow):
    with patch(
        "src.app.use_cases.auth.login_use_case.verify_password", return_value=False
    ) as verify:
        result = await LoginUseCase(mock_uow, bcrypt_rounds=4).execute(
            LoginCommand(email="ghost@example.com", password=PASSWORD)
        )

    assert result.error.code == "INVALID_CREDENTIALS"
    verify.assert_called_once_with(PASSWORD, dummy_password_hash(4))


@pytest.mark.asyncio
async def test_session_token_built_before_unit_of_work_exits(mock_uow):
    """Exiting without a commit rolls back and expires the loaded user"""
    events = []

    async def exit_unit_of_work(*args):
        events.append("exit")
        return False

    def issue_token(user, ttl):
        events.append("token")
        return "token"

    mock_uow.__aexit__ = AsyncMock(side_effect=exit_unit_of_work)
    mock_uow.users.get_by_email.return_value = make_user()

    with patch("src.app.use_cases.auth.login_use_case.generate_jwt", side_effect=issue_token):
        result = await LoginUseCase(mock_uow).execute(
            LoginCommand(email="user@example.com", password=PASSWORD)
        )

    assert result.value.access_token == "token"
    assert events == ["token", "exit"]


@pytest.mark.asyncio
async def test_unverified_user_does_not_consume_attempts(mock_uow):
    mock_uow.users.get_by_email.return_value = make_user(verified=False)

    result = await LoginUseCase(mock_uow).execute(
        LoginCommand(email="user@example.com", password="wrong")
    )

    assert result.is_err()
    assert result.error.code == "NOT_VERIFIED"
    mock_uow.users.update_lockout.assert_not_called()


@pytest.mark.asyncio
async def test_wrong_password_increments_attempts(mock_uow):
    user = make_user(lockout_attempts=2)
    mock_uow.users.get_by_email.return_value = user

    result = await LoginUseCase(mock_uow).execute(
        LoginCommand(email="user@example.com", password="Wr0ng!Pass")
    )

    assert result.is_err()
    assert result.error.code == "INVALID_CREDENTIALS"
    mock_uow.users.update_lockout.assert_called_once_with(user.id, 3, None)
    mock_uow.commit.assert_called_once()


@pytest.mark.asyncio
async def test_fifth_failure_locks_account(mock_uow):
    user = make_user(lockout_attempts=4)
    mock_uow.users.get_by_email.return_value = user

    before = utcnow()
    result = await LoginUseCase(mock_uow).execute(
        LoginCommand(email="user@example.com", password="Wr0ng!Pass")
    )

    assert result.error.code == "INVALID_CREDENTIALS"
    user_id, attempts, locked_until = mock_uow.users.update_lockout.call_args.args
    assert user_id == user.id
    assert attempts == 5
    assert before + timedelta(minutes=15) <= locked_until <= utcnow() + timedelta(minutes=15)


@pytest.mark.asyncio
async def test_locked_account_never_checks_password(mock_uow):
    locked_until = utcnow() + timedelta(minutes=10)
    mock_uow.users.get_by_email.return_value = make_user(
        lockout_attempts=5, locked_until=locked_until
    )

    with patch("src.app.use_cases.auth.login_use_case.verify_password") as verify:
        result = await LoginUseCase(mock_uow).execute(
            LoginCommand(email="user@example.com", password=PASSWORD)
        )

    assert result.is_err()
    assert result.error.code == "ACCOUNT_LOCKED"
    assert result.error.details["locked_until"] == locked_until.isoformat()
    assert locked_until.isoformat() in result.error.message
    verify.assert_not_called()
    mock_uow.users.update_lockout.assert_not_called()


@pytest.mark.asyncio
async def test_expired_lock_allows_login(mock_uow):
    user = make_user(lockout_attempts=5, locked_until=utcnow() - timedelta(seconds=1))
    mock_uow.users.get_by_email.return_value = user

    result = await LoginUseCase(mock_uow).execute(
        LoginCommand(email="user@example.com", password=PASSWORD)
    )

    assert result.is_ok()
    mock_uow.users.update_lockout.assert_called_once_with(user.id, 0, None)


@pytest.mark.asyncio
async def test_audit_never_contains_password(mock_uow, caplog):
    mock_uow.users.get_by_email.return_value = make_user()

    with caplog.at_level("INFO", logger="audit"):
        await LoginUseCase(mock_uow).execute(
            LoginCommand(email="user@example.com", password="Wr0ng!Pass")
        )

    records = [r for r in caplog.records if r.name == "audit"]
    assert records
    for record in records:
        assert "Wr0ng!Pass" not in record.getMessage()
        assert json.loads(record.getMessage())["event"] == "login_failed"
