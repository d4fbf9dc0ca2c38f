import re
from datetime import UTC, datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from config import ApplicationConfig
from src.domain.entities import User

DEFAULT_TTL = timedelta(minutes=15)
TTL_PATTERN = re.compile(r"^(\d+)([mhd])$")
TTL_UNITS = {"m": "minutes", "h": "hours", "d": "days"}


def parse_ttl(ttl: Optional[str]) -> timedelta:
    """
    Parse a duration string such as "15m", "2h" or "7d".

    Args:
        ttl: <number><unit> with unit in m, h, d

    Returns:
        The duration, or 15 minutes when the string is missing or malformed
    """
    match = TTL_PATTERN.match((ttl or "").strip())
    if not match:
        return DEFAULT_TTL
    value, unit = match.groups()
    return timedelta(**{TTL_UNITS[unit]: int(value)})


def generate_jwt(user: User, ttl: Optional[str] = None) -> str:
    """
    Generate session access token

    Args:
        user: Authenticated user
        ttl: Lifetime string, defaults to ApplicationConfig.JWT_TTL

    Returns:
        JWT token string (HS256) carrying sub, email, role, token_version
    """
    now = datetime.now(UTC)
    role = user.role.value if hasattr(user.role, "value") else user.role
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": role,
        "token_version": user.token_version,
        "iat": now,
        "exp": now + parse_ttl(ttl or ApplicationConfig.JWT_TTL),
    }
    return jwt.encode(payload, ApplicationConfig.JWT_SECRET, algorithm="HS256")


def verify_jwt(token: str) -> Optional[dict]:
    """
    Verify and decode JWT token

    Args:
        token: JWT token string

    Returns:
        Decoded payload dict or None if invalid
    """
    try:
        payload = jwt.decode(
            token, ApplicationConfig.JWT_SECRET, algorithms=["HS256"]
        )
        return payload
    except JWTError:
        return None
