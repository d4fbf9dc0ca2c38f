"""
PasswordResetOtp Entity

Six-digit one-time passwords for the forgot-password flow.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Uuid
from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow


class PasswordResetOtp(SQLModel, table=True):
    """
    PasswordResetOtp entity - salted HMAC of a numeric OTP.

    Business Rules:
    - otp_hash is HMAC-SHA256(server secret, "salt:otp"), salt random per record
    - Expires 5 minutes after issuance
    - Single-use: used_at is set exactly once, at redemption
    - Only the most recent unused record of a user can be redeemed
    - Deleted together with its user
    """

    __tablename__ = "password_reset_otps"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    user_id: UUID = Field(
        sa_column=Column(
            Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    otp_hash: str = Field(max_length=64)
    salt: str = Field(max_length=64)

    # Timestamps
    expires_at: datetime = Field(sa_column=Column(DateTime, nullable=False))
    used_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_password_reset_otps_user_created", "user_id", "created_at"),
    )
