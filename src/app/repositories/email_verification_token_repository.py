from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.domain.entities import EmailVerificationToken


class IEmailVerificationTokenRepository(ABC):
    """EmailVerificationToken repository interface - application layer"""

    @abstractmethod
    async def create(self, token: EmailVerificationToken) -> EmailVerificationToken:
        """Create a new email verification token"""
        pass

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> Optional[EmailVerificationToken]:
        """Get email verification token by token hash"""
        pass

    @abstractmethod
    async def update(self, token: EmailVerificationToken) -> EmailVerificationToken:
        """Update existing email verification token"""
        pass

    @abstractmethod
    async def invalidate_unused_for_user(self, user_id: UUID, used_at: datetime) -> int:
        """Mark every unused token of the user as used; returns the count"""
        pass
