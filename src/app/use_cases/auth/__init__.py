"""
Authentication Use Cases

Registration, login, email verification, password reset and resend flows.
"""

from .register_use_case import RegisterUseCase
from .login_use_case import LoginUseCase
from .verify_email_use_case import VerifyEmailUseCase
from .request_password_reset_use_case import RequestPasswordResetUseCase
from .confirm_password_reset_use_case import ConfirmPasswordResetUseCase
from .resend_verification_use_case import (
    ResendVerificationUseCase,
    ResendPasswordResetOtpUseCase,
)
from .dtos import (
    RequestContext,
    RegisterCommand,
    LoginCommand,
    ConfirmPasswordResetCommand,
    RegisterResponse,
    LoginResponse,
    VerifyEmailResponse,
    RequestPasswordResetResponse,
    ConfirmPasswordResetResponse,
    ResendVerificationResponse,
)

__all__ = [
    # Use Cases
    "RegisterUseCase",
    "LoginUseCase",
    "VerifyEmailUseCase",
    "RequestPasswordResetUseCase",
    "ConfirmPasswordResetUseCase",
    "ResendVerificationUseCase",
    "ResendPasswordResetOtpUseCase",
    # DTOs - Commands
    "RequestContext",
    "RegisterCommand",
    "LoginCommand",
    "ConfirmPasswordResetCommand",
    # DTOs - Responses
    "RegisterResponse",
    "LoginResponse",
    "VerifyEmailResponse",
    "RequestPasswordResetResponse",
    "ConfirmPasswordResetResponse",
    "ResendVerificationResponse",
]
