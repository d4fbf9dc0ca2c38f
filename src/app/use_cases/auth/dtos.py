"""
Authentication Use Case DTOs (Data Transfer Objects)

All Command and Response classes for auth domain.
Provides type safety and clear contracts between layers.
"""

from pydantic import BaseModel


# ============================================================================
# Command DTOs
# ============================================================================


class RequestContext(BaseModel):
    """Client information carried into use cases for audit logging"""

    ip: str = "unknown"
    user_agent: str = ""


class RegisterCommand(BaseModel):
    """Command for registering a new account"""

    email: str
    password: str
    context: RequestContext = RequestContext()


class LoginCommand(BaseModel):
    """Command for logging in"""

    email: str
    password: str
    context: RequestContext = RequestContext()


class ConfirmPasswordResetCommand(BaseModel):
    """Command for redeeming a password reset OTP"""

    email: str
    otp: str
    new_password: str
    context: RequestContext = RequestContext()


# ============================================================================
# Response DTOs
# ============================================================================


class RegisterResponse(BaseModel):
    """Response for register use case"""

    user_id: str
    email: str


class LoginResponse(BaseModel):
    """
    Response for login use case.

    access_token is delivered as a cookie by the HTTP layer and never
    serialized into a response body.
    """

    user_id: str
    email: str
    role: str
    access_token: str


class VerifyEmailResponse(BaseModel):
    """Response for email verification use case"""

    email: str
    verified: bool


class RequestPasswordResetResponse(BaseModel):
    """Response for forgot password use case"""

    email: str
    sent: bool


class ConfirmPasswordResetResponse(BaseModel):
    """Response for reset password use case"""

    email: str
    success: bool


class ResendVerificationResponse(BaseModel):
    """Response for both resend use cases"""

    email: str
    sent: bool
    message: str
