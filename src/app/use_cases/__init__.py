"""
Use Cases

Organized into domain folders:
- auth/: Account lifecycle flows
"""

from .auth import (
    RegisterUseCase,
    LoginUseCase,
    VerifyEmailUseCase,
    RequestPasswordResetUseCase,
    ConfirmPasswordResetUseCase,
    ResendVerificationUseCase,
    ResendPasswordResetOtpUseCase,
)

__all__ = [
    "RegisterUseCase",
    "LoginUseCase",
    "VerifyEmailUseCase",
    "RequestPasswordResetUseCase",
    "ConfirmPasswordResetUseCase",
    "ResendVerificationUseCase",
    "ResendPasswordResetOtpUseCase",
]
