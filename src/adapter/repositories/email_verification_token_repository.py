from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.email_verification_token_repository import (
    IEmailVerificationTokenRepository,
)
from src.domain.entities import EmailVerificationToken


class EmailVerificationTokenRepository(IEmailVerificationTokenRepository):
    """EmailVerificationToken repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, token: EmailVerificationToken) -> EmailVerificationToken:
        """Create a new email verification token"""
        self.session.add(token)
        await self.session.flush()
        await self.session.refresh(token)
        return token

    async def get_by_token_hash(self, token_hash: str) -> Optional[EmailVerificationToken]:
        """Get email verification token by token hash"""
        stmt = select(EmailVerificationToken).where(
            EmailVerificationToken.token_hash == token_hash
        )
        result = await self.session.exec(stmt)
        return result.first()

    async def update(self, token: EmailVerificationToken) -> EmailVerificationToken:
        """Update existing email verification token"""
        self.session.add(token)
        await self.session.flush()
        await self.session.refresh(token)
        return token

    async def invalidate_unused_for_user(self, user_id: UUID, used_at: datetime) -> int:
        """Mark every unused token of the user as used"""
        stmt = (
            update(EmailVerificationToken)
            .where(EmailVerificationToken.user_id == user_id)
            .where(EmailVerificationToken.used_at.is_(None))
            .values(used_at=used_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.exec(stmt)
        return result.rowcount
