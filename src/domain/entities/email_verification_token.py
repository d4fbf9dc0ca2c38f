"""
EmailVerificationToken Entity

Single-use links sent at registration and on resend.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Uuid
from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow


class EmailVerificationToken(SQLModel, table=True):
    """
    EmailVerificationToken entity - hashed email verification secret.

    Business Rules:
    - token_hash is SHA-256 of a 32-byte random hex secret; the raw secret
      only ever travels inside the verification link
    - Expires 5 minutes after issuance
    - Single-use: used_at is set exactly once, at redemption
    - Resend marks every outstanding token of the user as used
    - Deleted together with its user
    """

    __tablename__ = "email_verification_tokens"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    user_id: UUID = Field(
        sa_column=Column(
            Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    token_hash: str = Field(max_length=64)

    # Timestamps
    expires_at: datetime = Field(sa_column=Column(DateTime, nullable=False))
    used_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_email_verification_tokens_token_hash", "token_hash"),
    )
