"""
Account Service Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class UserRole(str, Enum):
    """Account role embedded in session tokens"""

    user = "user"
    admin = "admin"


class RateLimitPolicyType(str, Enum):
    """Built-in rate limit policies. Custom policies are plain strings."""

    general = "general"
    sensitive = "sensitive"
    login = "login"
    upload = "upload"
    register = "register"
    verify_email = "verify_email"
    password_reset = "password_reset"
    resend_register = "resend_register"
    resend_password_reset = "resend_password_reset"
