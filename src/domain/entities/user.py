"""
User Entity

Represents an account holder and its lockout state.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow
from .enums import UserRole


class User(SQLModel, table=True):
    """
    User entity - an account that can log in once its email is verified.

    Business Rules:
    - Email is unique and stored in canonical form (trimmed, lowercase)
    - Password stored as bcrypt hash (configurable cost factor)
    - lockout_attempts counts consecutive failed logins, reset on success
    - locked_until in the future means the account is locked
    - token_version is embedded in session tokens; bumped on password reset
    """

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: str = Field(max_length=255)

    role: UserRole = Field(default=UserRole.user)
    verified: bool = Field(default=False)

    # Lockout state
    lockout_attempts: int = Field(default=0, ge=0)
    locked_until: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    token_version: int = Field(default=1, ge=1)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (Index("idx_user_verified", "verified"),)
