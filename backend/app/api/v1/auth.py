"""Authentication routes: sign-up, email verification, sessions, password reset"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api.deps import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    get_client_ip,
    get_rate_limiter,
)
from app.config import settings
from app.core.database import get_db
from app.core.exceptions import (
    AuthenticationError,
    EmailDeliveryError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    RateLimitExceededError,
    ResourceNotFoundError,
    ValidationError,
)
from app.core.metrics import AUTH_EVENTS
from app.core.security import (
    AuthTokens,
    TokenType,
    generate_access_token,
    generate_csrf_token,
    generate_email_verification_token,
    generate_password_reset_token,
    generate_tokens,
    hash_password,
    refresh_token_lifetime,
    sanitize_input,
    validate_email,
    validate_password,
    validate_username,
    verify_dummy_password,
    verify_password,
    verify_token,
)
from app.models.user import USER_ROLES
from app.schemas.auth import (
    ForgotPasswordRequest,
    ResetPasswordRequest,
    SignInRequest,
    SignInResponse,
    SignUpRequest,
    SignUpResponse,
)
from app.schemas.response import MessageResponse
from app.schemas.user import SignedInUser, UserPublic, UserRole
from app.services.email_service import (
    create_email_verification_template,
    create_password_reset_template,
    create_welcome_template,
    email_service,
)
from app.services.rate_limiter import LoginRateLimiter, login_rate_limit_key
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter()

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, we have sent a password reset link."
INVALID_RESET_TOKEN = "Invalid or expired reset token"
INVALID_VERIFICATION_TOKEN = "Invalid or expired verification token"


def _set_session_cookie(response: Response, name: str, value: str, max_age: int) -> None:
    response.set_cookie(
        name,
        value,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def set_session_cookies(response: Response, tokens: AuthTokens, remember_me: bool) -> None:
    """Access cookie lives as long as the access token; refresh cookie 1 or 7 days."""
    _set_session_cookie(
        response, ACCESS_TOKEN_COOKIE, tokens.access_token, settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    )
    _set_session_cookie(
        response,
        REFRESH_TOKEN_COOKIE,
        tokens.refresh_token,
        int(refresh_token_lifetime(remember_me).total_seconds()),
    )


def clear_session_cookies(response: Response) -> None:
    for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(
            name, path="/", httponly=True, secure=settings.is_production, samesite="strict"
        )


@router.post("/sign-up", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
def sign_up(
    payload: SignUpRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """
    Register a new, unverified account

    Every field is checked before responding so the client can show all
    problems at once. The verification email is sent after the response;
    failing to send it does not undo the registration.
    """
    username = sanitize_input(payload.username)
    email = sanitize_input(payload.email).lower()
    password = payload.password or ""
    confirm_password = payload.confirm_password or ""
    name = sanitize_input(payload.name)
    role = sanitize_input(payload.role) or UserRole.CHILD.value
    age = payload.age

    errors: Dict[str, List[str]] = {}

    username_check = validate_username(username)
    if not username_check.is_valid:
        errors["username"] = username_check.errors

    if not validate_email(email):
        errors["email"] = ["Please enter a valid email address"]

    password_check = validate_password(password)
    if not password_check.is_valid:
        errors["password"] = password_check.errors

    if password != confirm_password:
        errors["confirmPassword"] = ["Passwords do not match"]

    if len(name) < 2:
        errors["name"] = ["Name must be at least 2 characters long"]

    if role == UserRole.CHILD.value and (age is None or not 3 <= age <= 18):
        errors["age"] = ["Age must be between 3 and 18 for child accounts"]

    if role not in USER_ROLES:
        errors["role"] = ["Invalid role selected"]

    if email and user_service.check_email_exists(db, email):
        errors["email"] = ["An account with this email already exists"]

    if username and user_service.check_username_exists(db, username):
        errors["username"] = ["This username is already taken"]

    if errors:
        raise ValidationError("Validation failed", errors)

    verification_token = generate_email_verification_token(email)
    try:
        user = user_service.create_user(
            db,
            username=username,
            email=email,
            name=name,
            age=age,
            role=role,
            password_hash=hash_password(password),
            email_verification_token=verification_token,
        )
    except IntegrityError:
        # Lost a race with a concurrent sign-up for the same email or username
        db.rollback()
        if user_service.check_email_exists(db, email):
            raise ValidationError("Validation failed", {"email": ["An account with this email already exists"]})
        raise ValidationError("Validation failed", {"username": ["This username is already taken"]})

    AUTH_EVENTS.labels("sign_up").inc()
    background_tasks.add_task(
        email_service.send_best_effort,
        create_email_verification_template(user.email, verification_token, user.name),
    )

    return SignUpResponse(
        message="Account created successfully. Please check your email to verify your account.",
        user=UserPublic.model_validate(user),
        csrf_token=generate_csrf_token(),
    )


@router.get("/verify-email", status_code=status.HTTP_302_FOUND)
def verify_email(
    background_tasks: BackgroundTasks,
    token: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Consume an email-verification token and redirect to the confirmation page
    """
    token = (token or "").strip()
    if not token:
        raise ValidationError("Verification token is required")

    claims = verify_token(token, TokenType.EMAIL_VERIFICATION)
    if not claims:
        raise ValidationError(INVALID_VERIFICATION_TOKEN)

    user = user_service.find_user_by_email(db, claims.subject)
    if not user:
        raise ResourceNotFoundError("Email verification failed. User not found.")

    confirmation_url = f"{settings.FRONTEND_URL.rstrip('/')}/auth/email-verified"

    if user.is_email_verified:
        return RedirectResponse(confirmation_url, status_code=status.HTTP_302_FOUND)

    if not user_service.verify_user_email(db, user.email, token):
        # Signed and unexpired, but superseded by a newer token
        raise ValidationError(INVALID_VERIFICATION_TOKEN)

    AUTH_EVENTS.labels("email_verified").inc()
    background_tasks.add_task(
        email_service.send_best_effort,
        create_welcome_template(user.email, user.name, user.role),
    )
    return RedirectResponse(confirmation_url, status_code=status.HTTP_302_FOUND)


@router.post("/sign-in", response_model=SignInResponse)
def sign_in(
    payload: SignInRequest,
    response: Response,
    client_ip: str = Depends(get_client_ip),
    limiter: LoginRateLimiter = Depends(get_rate_limiter),
    db: Session = Depends(get_db)
):
    """
    Authenticate with email or username and start a cookie session

    Unknown accounts and wrong passwords produce the same 401 and both
    count towards the (client, account) lockout.
    """
    identifier = sanitize_input(payload.email_or_username)
    password = payload.password or ""

    if not identifier:
        raise ValidationError("Email or username is required")
    if not password:
        raise ValidationError("Password is required")

    rate_key = login_rate_limit_key(client_ip, identifier)
    rate_limit = limiter.check_rate_limit(rate_key)
    if not rate_limit.allowed:
        AUTH_EVENTS.labels("sign_in_locked").inc()
        logger.warning(f"Sign-in locked out for {identifier} from {client_ip}")
        raise RateLimitExceededError(rate_limit.remaining_time_ms or 0)

    user = user_service.find_user_by_email_or_username(db, identifier)
    if user is None:
        password_ok = verify_dummy_password(password)
    else:
        password_ok = verify_password(password, user.password_hash)

    if not password_ok:
        attempts = limiter.record_failed_attempt(rate_key)
        AUTH_EVENTS.labels("sign_in_failed").inc()
        logger.warning(f"Failed sign-in for {identifier} from {client_ip} (attempt {attempts})")
        raise InvalidCredentialsError()

    if not user.is_email_verified:
        raise EmailNotVerifiedError()

    limiter.clear_failed_attempts(rate_key)
    tokens = generate_tokens(user, remember_me=payload.remember_me)
    user = user_service.update_user_last_login(db, user)
    set_session_cookies(response, tokens, payload.remember_me)

    AUTH_EVENTS.labels("sign_in").inc()
    logger.info(f"User signed in: {user.username}")

    return SignInResponse(message="Sign in successful", user=SignedInUser.model_validate(user))


@router.post("/sign-out", response_model=MessageResponse)
def sign_out(response: Response):
    """Clear the session cookies. Always succeeds."""
    clear_session_cookies(response)
    return MessageResponse(message="Signed out successfully")


@router.post("/refresh", response_model=MessageResponse)
def refresh_session(
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """Issue a new access cookie from a valid refresh cookie"""
    claims = verify_token(request.cookies.get(REFRESH_TOKEN_COOKIE) or "", TokenType.REFRESH)
    if not claims:
        raise AuthenticationError("Invalid or expired session")

    user = user_service.find_user_by_email(db, claims.subject)
    if (
        not user
        or not user.is_email_verified
        or (claims.user_id is not None and claims.user_id != user.id)
    ):
        raise AuthenticationError("Invalid or expired session")

    _set_session_cookie(
        response, ACCESS_TOKEN_COOKIE, generate_access_token(user), settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    )
    return MessageResponse(message="Session refreshed")


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    payload: ForgotPasswordRequest,
    db: Session = Depends(get_db)
):
    """
    Start a password reset

    The response is the same whether or not the account exists. The one
    observable difference is a delivery failure for an existing account,
    which is reported because the user has no other way to find out.
    """
    email = sanitize_input(payload.email).lower()
    if not validate_email(email):
        raise ValidationError("Please enter a valid email address")

    user = user_service.find_user_by_email(db, email)
    if user:
        reset_token = generate_password_reset_token(user.email)
        user_service.set_password_reset_token(db, user.email, reset_token)

        template = create_password_reset_template(user.email, reset_token, user.name)
        try:
            sent = email_service.send_email(template)
        except Exception:
            logger.exception(f"Failed to send password reset email to {user.email}")
            sent = False
        if not sent:
            raise EmailDeliveryError("Failed to send password reset email. Please try again.")

        AUTH_EVENTS.labels("password_reset_requested").inc()
        logger.info(f"Password reset requested for {user.email}")

    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    payload: ResetPasswordRequest,
    db: Session = Depends(get_db)
):
    """
    Set a new password with a reset token

    Input problems are reported together; the message names the first one.
    """
    token = sanitize_input(payload.token)
    password = payload.password or ""
    confirm_password = payload.confirm_password or ""

    errors: Dict[str, List[str]] = {}
    messages: List[str] = []

    if not token:
        errors["token"] = ["Reset token is required"]
        messages.append("Reset token is required")

    if not password or not confirm_password:
        errors["password"] = ["Password and confirmation are required"]
        messages.append("Password and confirmation are required")
    elif password != confirm_password:
        errors["confirmPassword"] = ["Passwords do not match"]
        messages.append("Passwords do not match")

    if password:
        strength = validate_password(password)
        if not strength.is_valid:
            errors.setdefault("password", []).extend(strength.errors)
            messages.append("Password does not meet requirements")

    if errors:
        raise ValidationError(messages[0], errors)

    claims = verify_token(token, TokenType.PASSWORD_RESET)
    if not claims:
        raise ValidationError(INVALID_RESET_TOKEN)

    user = user_service.find_user_by_email(db, claims.subject)
    if not user:
        raise ResourceNotFoundError("Password reset failed. User not found.")

    if not user_service.reset_user_password(db, user.email, token, hash_password(password)):
        # Superseded by a newer request or already used
        raise ValidationError(INVALID_RESET_TOKEN)

    AUTH_EVENTS.labels("password_reset").inc()
    return MessageResponse(
        message="Password has been reset successfully. You can now sign in with your new password."
    )
