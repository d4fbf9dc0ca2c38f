from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.password_reset_otp_repository import IPasswordResetOtpRepository
from src.domain.entities import PasswordResetOtp


class PasswordResetOtpRepository(IPasswordResetOtpRepository):
    """PasswordResetOtp repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, otp: PasswordResetOtp) -> PasswordResetOtp:
        """Create a new password reset OTP"""
        self.session.add(otp)
        await self.session.flush()
        await self.session.refresh(otp)
        return otp

    async def get_latest_unused_for_user(self, user_id: UUID) -> Optional[PasswordResetOtp]:
        """Get the most recently created unused OTP of the user"""
        stmt = (
            select(PasswordResetOtp)
            .where(PasswordResetOtp.user_id == user_id)
            .where(PasswordResetOtp.used_at.is_(None))
            .order_by(PasswordResetOtp.created_at.desc())
            .limit(1)
        )
        result = await self.session.exec(stmt)
        return result.first()

    async def get_latest_for_user(self, user_id: UUID) -> Optional[PasswordResetOtp]:
        """Get the most recently created OTP of the user, used or not"""
        stmt = (
            select(PasswordResetOtp)
            .where(PasswordResetOtp.user_id == user_id)
            .order_by(PasswordResetOtp.created_at.desc())
            .limit(1)
        )
        result = await self.session.exec(stmt)
        return result.first()

    async def update(self, otp: PasswordResetOtp) -> PasswordResetOtp:
        """Update existing password reset OTP"""
        self.session.add(otp)
        await self.session.flush()
        await self.session.refresh(otp)
        return otp

    async def invalidate_unused_for_user(self, user_id: UUID, used_at: datetime) -> int:
        """Mark every unused OTP of the user as used"""
        stmt = (
            update(PasswordResetOtp)
            .where(PasswordResetOtp.user_id == user_id)
            .where(PasswordResetOtp.used_at.is_(None))
            .values(used_at=used_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.exec(stmt)
        return result.rowcount
