from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.domain.entities import PasswordResetOtp


class IPasswordResetOtpRepository(ABC):
    """PasswordResetOtp repository interface - application layer"""

    @abstractmethod
    async def create(self, otp: PasswordResetOtp) -> PasswordResetOtp:
        """Create a new password reset OTP"""
        pass

    @abstractmethod
    async def get_latest_unused_for_user(self, user_id: UUID) -> Optional[PasswordResetOtp]:
        """Get the most recently created unused OTP of the user"""
        pass

    @abstractmethod
    async def get_latest_for_user(self, user_id: UUID) -> Optional[PasswordResetOtp]:
        """Get the most recently created OTP of the user, used or not"""
        pass

    @abstractmethod
    async def update(self, otp: PasswordResetOtp) -> PasswordResetOtp:
        """Update existing password reset OTP"""
        pass

    @abstractmethod
    async def invalidate_unused_for_user(self, user_id: UUID, used_at: datetime) -> int:
        """Mark every unused OTP of the user as used; returns the count"""
        pass
