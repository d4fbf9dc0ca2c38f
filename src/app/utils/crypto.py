"""
Secret generation and hashing helpers

- Email verification tokens: 32 random bytes (hex), stored as plain SHA-256
- Password reset OTPs: 6 decimal digits, stored as HMAC-SHA256 over
  "salt:otp" with a server secret and a random per-record salt
- Passwords: bcrypt with a configurable cost factor
"""

import hashlib
import hmac
import secrets
from functools import lru_cache
from typing import Tuple

import bcrypt

DIGITS = "0123456789"
USER_AGENT_MAX_LENGTH = 100


def normalize_email(email: str) -> str:
    """Canonical lookup form of an email: trimmed and lowercased"""
    return email.strip().lower()


def hash_identifier(value: str) -> str:
    """SHA-256 hex digest, used to key rate limits without storing emails"""
    return hashlib.sha256(value.encode()).hexdigest()


def truncate_user_agent(user_agent: str | None) -> str:
    return (user_agent or "")[:USER_AGENT_MAX_LENGTH]


def generate_verification_token() -> Tuple[str, str]:
    """
    Returns:
        (raw token, SHA-256 hex digest of the token)
    """
    token = secrets.token_bytes(32).hex()
    return token, hash_token(token)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def generate_numeric_otp(length: int = 6) -> str:
    """One random byte per digit, reduced modulo 10"""
    random_bytes = secrets.token_bytes(length)
    return "".join(DIGITS[b % 10] for b in random_bytes)


def hash_otp(otp: str, secret: str, salt: str | None = None) -> Tuple[str, str]:
    """
    Returns:
        (otp_hash, salt) - salt is generated when not given
    """
    effective_salt = salt or secrets.token_hex(16)
    digest = hmac.new(
        secret.encode(), f"{effective_salt}:{otp}".encode(), hashlib.sha256
    ).hexdigest()
    return digest, effective_salt


def verify_otp(otp: str, secret: str, salt: str, otp_hash: str) -> bool:
    """Constant-time comparison of a submitted OTP against its stored hash"""
    computed, _ = hash_otp(otp, secret, salt)
    return hmac.compare_digest(computed, otp_hash)


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


@lru_cache(maxsize=None)
def dummy_password_hash(rounds: int = 12) -> str:
    """Compared against for unknown accounts so every login pays one bcrypt check"""
    return hash_password("dummy_password", rounds)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash never matches
        return False
