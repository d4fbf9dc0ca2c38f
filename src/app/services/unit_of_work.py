from abc import ABC, abstractmethod

from src.app.repositories.email_verification_token_repository import (
    IEmailVerificationTokenRepository,
)
from src.app.repositories.password_reset_otp_repository import IPasswordResetOtpRepository
from src.app.repositories.user_repository import IUserRepository


class UnitOfWork(ABC):
    """Abstract UnitOfWork - defines repository access and transaction management"""

    # Repository properties (initialized in __aenter__)
    users: IUserRepository
    email_verification_tokens: IEmailVerificationTokenRepository
    password_reset_otps: IPasswordResetOtpRepository

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
