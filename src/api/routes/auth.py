from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, EmailStr, Field

from config import ApplicationConfig
from src.api.error import ClientError, ServerError
from src.app.services.mail_queue import IMailQueue
from src.app.services.rate_limiter import RateLimiter
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth import (
    ConfirmPasswordResetCommand,
    ConfirmPasswordResetResponse,
    ConfirmPasswordResetUseCase,
    LoginCommand,
    LoginUseCase,
    RegisterCommand,
    RegisterResponse,
    RegisterUseCase,
    RequestContext,
    RequestPasswordResetResponse,
    RequestPasswordResetUseCase,
    ResendPasswordResetOtpUseCase,
    ResendVerificationResponse,
    ResendVerificationUseCase,
    VerifyEmailResponse,
    VerifyEmailUseCase,
)
from src.core.result import Error
from src.depends import get_mail_queue, get_rate_limiter, get_request_context, get_unit_of_work

router = APIRouter(prefix="/auth", tags=["Authentication"])

ACCESS_TOKEN_COOKIE_MAX_AGE = 15 * 60

ERROR_STATUS = {
    "INVALID_CREDENTIALS": status.HTTP_401_UNAUTHORIZED,
    "NOT_VERIFIED": status.HTTP_403_FORBIDDEN,
    "ACCOUNT_LOCKED": status.HTTP_423_LOCKED,
    "RATE_LIMIT_EXCEEDED": status.HTTP_429_TOO_MANY_REQUESTS,
    "INVALID_OR_EXPIRED_TOKEN": status.HTTP_400_BAD_REQUEST,
    "TOKEN_ALREADY_USED": status.HTTP_409_CONFLICT,
    "TOKEN_EXPIRED": status.HTTP_410_GONE,
    "EMAIL_ALREADY_EXISTS": status.HTTP_409_CONFLICT,
    "WEAK_PASSWORD": status.HTTP_400_BAD_REQUEST,
    "ALREADY_VERIFIED": status.HTTP_409_CONFLICT,
    "NO_PASSWORD_RESET_REQUEST": status.HTTP_400_BAD_REQUEST,
}


def raise_for_error(error: Error):
    """Map a use case error code to its HTTP status"""
    status_code = ERROR_STATUS.get(error.code)
    if status_code is None:
        raise ServerError(error)

    headers = None
    rate_limit = error.details.get("rate_limit")
    if rate_limit:
        headers = {"Retry-After": str(rate_limit["remaining_seconds"])}
    raise ClientError(error, status_code=status_code, headers=headers)


class RegisterRequest(BaseModel):
    """Register HTTP request payload"""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., max_length=128, description="Password (policy checked by the use case)")


@router.post(
    "/register",
    name="auth.register",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
)
async def register(
    request: RegisterRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    mail_queue: IMailQueue = Depends(get_mail_queue),
    context: RequestContext = Depends(get_request_context),
):
    """
    Register a new account

    Creates an unverified user and enqueues the verification email.

    Raises:
        - 400 Bad Request: Password does not satisfy the policy
        - 409 Conflict: Email already registered
        - 429 Too Many Requests: Rate limit exceeded
    """
    use_case = RegisterUseCase(
        uow,
        mail_queue,
        app_base_url=ApplicationConfig.APP_BASE_URL,
        bcrypt_rounds=ApplicationConfig.BCRYPT_ROUNDS,
    )
    result = await use_case.execute(
        RegisterCommand(email=request.email, password=request.password, context=context)
    )

    if result.is_err():
        raise_for_error(result.error)

    return result.value


class LoginRequest(BaseModel):
    """Login HTTP request payload"""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")


class LoginBody(BaseModel):
    """Login response body; the access token travels only in the cookie"""

    user_id: str
    email: str
    role: str


@router.post("/login", name="auth.login", status_code=status.HTTP_200_OK, response_model=LoginBody)
async def login(
    request: LoginRequest,
    response: Response,
    uow: UnitOfWork = Depends(get_unit_of_work),
    context: RequestContext = Depends(get_request_context),
):
    """
    Login

    Sets the session token as an HTTP-only cookie.

    Raises:
        - 401 Unauthorized: Invalid credentials
        - 403 Forbidden: Email not verified
        - 423 Locked: Account locked after repeated failures
        - 429 Too Many Requests: Rate limit exceeded
    """
    use_case = LoginUseCase(
        uow, jwt_ttl=ApplicationConfig.JWT_TTL, bcrypt_rounds=ApplicationConfig.BCRYPT_ROUNDS
    )
    result = await use_case.execute(
        LoginCommand(email=request.email, password=request.password, context=context)
    )

    if result.is_err():
        raise_for_error(result.error)

    login_response = result.value
    response.set_cookie(
        key=ApplicationConfig.ACCESS_TOKEN_COOKIE_NAME,
        value=login_response.access_token,
        max_age=ACCESS_TOKEN_COOKIE_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=ApplicationConfig.is_production(),
        domain=ApplicationConfig.COOKIE_DOMAIN,
        path="/",
    )

    return LoginBody(
        user_id=login_response.user_id,
        email=login_response.email,
        role=login_response.role,
    )


class VerifyEmailRequest(BaseModel):
    """Verify email HTTP request payload"""

    token: str = Field(..., min_length=1, max_length=256, description="Token from the verification link")


@router.post(
    "/verify-email",
    name="auth.verify_email",
    status_code=status.HTTP_200_OK,
    response_model=VerifyEmailResponse,
)
async def verify_email(
    request: VerifyEmailRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    context: RequestContext = Depends(get_request_context),
):
    """
    Verify email address

    Raises:
        - 400 Bad Request: Unknown token
        - 409 Conflict: Token already used
        - 410 Gone: Token expired
    """
    use_case = VerifyEmailUseCase(uow)
    result = await use_case.execute(request.token, context)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


class EmailRequest(BaseModel):
    """Payload of the flows that only need an email address"""

    email: EmailStr = Field(..., description="User email address")


@router.post(
    "/forgot-password",
    name="auth.forgot_password",
    status_code=status.HTTP_200_OK,
    response_model=RequestPasswordResetResponse,
)
async def forgot_password(
    request: EmailRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    mail_queue: IMailQueue = Depends(get_mail_queue),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    context: RequestContext = Depends(get_request_context),
):
    """
    Request a password reset OTP

    Unknown emails get the same response as registered ones.

    Raises:
        - 429 Too Many Requests: Too many reset requests for this account
    """
    use_case = RequestPasswordResetUseCase(
        uow,
        mail_queue,
        rate_limiter,
        otp_secret=ApplicationConfig.OTP_HMAC_SECRET,
        app_name=ApplicationConfig.APP_NAME,
        rate_limit_policy=ApplicationConfig.PASSWORD_RESET_RATE_LIMIT_POLICY,
    )
    result = await use_case.execute(request.email, context)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


class ResetPasswordRequest(BaseModel):
    """Reset password HTTP request payload"""

    email: EmailStr = Field(..., description="User email address")
    otp: str = Field(..., pattern=r"^\d{6}$", description="6-digit code from the email")
    new_password: str = Field(..., max_length=128, description="New password")


@router.post(
    "/reset-password",
    name="auth.reset_password",
    status_code=status.HTTP_200_OK,
    response_model=ConfirmPasswordResetResponse,
)
async def reset_password(
    request: ResetPasswordRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    context: RequestContext = Depends(get_request_context),
):
    """
    Redeem a password reset OTP

    Raises:
        - 400 Bad Request: Invalid OTP or weak password
        - 409 Conflict: OTP already used
        - 410 Gone: OTP expired
        - 429 Too Many Requests: Too many reset attempts for this account
    """
    use_case = ConfirmPasswordResetUseCase(
        uow,
        rate_limiter,
        otp_secret=ApplicationConfig.OTP_HMAC_SECRET,
        bcrypt_rounds=ApplicationConfig.BCRYPT_ROUNDS,
        rate_limit_policy=ApplicationConfig.PASSWORD_RESET_RATE_LIMIT_POLICY,
    )
    result = await use_case.execute(
        ConfirmPasswordResetCommand(
            email=request.email,
            otp=request.otp,
            new_password=request.new_password,
            context=context,
        )
    )

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.post(
    "/resend-verification",
    name="auth.resend_verification",
    status_code=status.HTTP_200_OK,
    response_model=ResendVerificationResponse,
)
async def resend_verification(
    request: EmailRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    mail_queue: IMailQueue = Depends(get_mail_queue),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    context: RequestContext = Depends(get_request_context),
):
    """
    Resend the verification email

    Raises:
        - 409 Conflict: Email already verified
        - 429 Too Many Requests: More than 3 resends in 24 hours
    """
    use_case = ResendVerificationUseCase(
        uow, mail_queue, rate_limiter, app_base_url=ApplicationConfig.APP_BASE_URL
    )
    result = await use_case.execute(request.email, context)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.post(
    "/resend-password-reset",
    name="auth.resend_password_reset",
    status_code=status.HTTP_200_OK,
    response_model=ResendVerificationResponse,
)
async def resend_password_reset(
    request: EmailRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    mail_queue: IMailQueue = Depends(get_mail_queue),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    context: RequestContext = Depends(get_request_context),
):
    """
    Resend the password reset OTP

    Raises:
        - 400 Bad Request: No password reset was requested before
        - 429 Too Many Requests: More than 3 resends in 24 hours
    """
    use_case = ResendPasswordResetOtpUseCase(
        uow,
        mail_queue,
        rate_limiter,
        otp_secret=ApplicationConfig.OTP_HMAC_SECRET,
        app_name=ApplicationConfig.APP_NAME,
    )
    result = await use_case.execute(request.email, context)

    if result.is_err():
        raise_for_error(result.error)

    return result.value
