"""
Account Service Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import RateLimitPolicyType, UserRole

# Export all entities
from .user import User
from .email_verification_token import EmailVerificationToken
from .password_reset_otp import PasswordResetOtp

__all__ = [
    # Enums
    "UserRole",
    "RateLimitPolicyType",
    # Entities
    "User",
    "EmailVerificationToken",
    "PasswordResetOtp",
]
