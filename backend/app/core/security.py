"""Security utilities - input validation, password hashing, signed tokens"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, List, Optional
import re
import secrets

from jose import JWTError, jwt
import bcrypt

from app.config import settings


MAX_INPUT_LENGTH = 1000
PASSWORD_SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
_STRIP_RE = re.compile(r"[<>\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_SPECIAL_RE = re.compile("[" + re.escape(PASSWORD_SPECIAL_CHARACTERS) + "]")

# bcrypt only looks at the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72


class TokenType(str, Enum):
    """Kinds of signed token the service issues"""
    EMAIL_VERIFICATION = "email-verification"
    PASSWORD_RESET = "password-reset"
    ACCESS = "access"
    REFRESH = "refresh"


_CSRF_TYPE = "csrf"


@dataclass
class ValidationResult:
    """Outcome of a rule check; errors lists every rule that failed"""
    is_valid: bool
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TokenClaims:
    """Decoded, verified token contents"""
    subject: str
    type: TokenType
    issued_at: datetime
    expires_at: datetime
    token_id: str
    user_id: Optional[int] = None
    role: Optional[str] = None


@dataclass(frozen=True)
class AuthTokens:
    access_token: str
    refresh_token: str


# ---------------------------------------------------------------------------
# Input handling
# ---------------------------------------------------------------------------

def sanitize_input(value: Any) -> str:
    """
    Normalize untrusted text input.

    Trims whitespace, removes angle brackets and control characters and
    caps the length. Never raises; None becomes an empty string.
    """
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    return _STRIP_RE.sub("", value.strip())[:MAX_INPUT_LENGTH]


def validate_email(email: str) -> bool:
    return bool(email) and _EMAIL_RE.match(email) is not None


def validate_username(username: str) -> ValidationResult:
    errors = []

    if len(username) < 3:
        errors.append("Username must be at least 3 characters long")

    if len(username) > 20:
        errors.append("Username must be no more than 20 characters long")

    if not _USERNAME_RE.match(username):
        errors.append("Username can only contain letters, numbers, and underscores")

    return ValidationResult(is_valid=not errors, errors=errors)


def validate_password(password: str) -> ValidationResult:
    """
    Check password strength.

    All rules are evaluated so the caller can show the full list:
    length, uppercase, lowercase, digit and special character.
    """
    errors = []

    if len(password) < 8:
        errors.append("Password must be at least 8 characters long")

    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")

    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")

    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")

    if not _SPECIAL_RE.search(password):
        errors.append("Password must contain at least one special character")

    return ValidationResult(is_valid=not errors, errors=errors)


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt

    Args:
        password: Plain text password

    Returns:
        str: Hashed password
    """
    return bcrypt.hashpw(
        _password_bytes(password),
        bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    ).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password

    Returns:
        bool: True if password matches, False on mismatch or a malformed hash
    """
    try:
        return bcrypt.checkpw(
            _password_bytes(plain_password),
            hashed_password.encode("utf-8")
        )
    except ValueError:
        return False


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    return hash_password(secrets.token_urlsafe(16))


def verify_dummy_password(plain_password: str) -> bool:
    """Spend one bcrypt comparison when there is no account to check against."""
    verify_password(plain_password, _dummy_password_hash())
    return False


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

def _now() -> datetime:
    return datetime.now(timezone.utc)


def _encode(claims: Dict[str, Any], expires_delta: timedelta) -> str:
    issued_at = _now()
    to_encode = dict(claims)
    to_encode.update({
        "iat": issued_at,
        "exp": issued_at + expires_delta,
        "jti": secrets.token_urlsafe(16),
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_token(
    subject: str,
    token_type: TokenType,
    expires_delta: timedelta,
    extra: Optional[Dict[str, Any]] = None
) -> str:
    """
    Create a signed token of the given type

    Args:
        subject: Account email the token speaks for
        token_type: What the token may be used for
        expires_delta: Lifetime
        extra: Additional claims (user id, role)

    Returns:
        str: Encoded JWT
    """
    claims = {"sub": subject, "typ": token_type.value}
    if extra:
        claims.update(extra)
    return _encode(claims, expires_delta)


def generate_email_verification_token(email: str, expires_delta: Optional[timedelta] = None) -> str:
    return create_token(
        email,
        TokenType.EMAIL_VERIFICATION,
        expires_delta or timedelta(hours=settings.EMAIL_VERIFICATION_TOKEN_EXPIRE_HOURS),
    )


def generate_password_reset_token(email: str, expires_delta: Optional[timedelta] = None) -> str:
    return create_token(
        email,
        TokenType.PASSWORD_RESET,
        expires_delta or timedelta(minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES),
    )


def refresh_token_lifetime(remember_me: bool) -> timedelta:
    days = settings.REMEMBER_ME_REFRESH_TOKEN_EXPIRE_DAYS if remember_me else settings.REFRESH_TOKEN_EXPIRE_DAYS
    return timedelta(days=days)


def generate_access_token(user) -> str:
    return create_token(
        user.email,
        TokenType.ACCESS,
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        extra={"uid": user.id, "role": user.role},
    )


def generate_tokens(user, remember_me: bool = False) -> AuthTokens:
    """
    Issue an access/refresh pair for a signed-in user

    Args:
        user: Authenticated user (needs id, email, role)
        remember_me: Use the long refresh lifetime

    Returns:
        AuthTokens: Access and refresh tokens
    """
    refresh_token = create_token(
        user.email,
        TokenType.REFRESH,
        refresh_token_lifetime(remember_me),
        extra={"uid": user.id},
    )
    return AuthTokens(access_token=generate_access_token(user), refresh_token=refresh_token)


def _decode(token: str) -> Optional[Dict[str, Any]]:
    if not token or not isinstance(token, str):
        return None
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def verify_token(token: str, expected_type: Optional[TokenType] = None) -> Optional[TokenClaims]:
    """
    Decode and verify a token

    Args:
        token: Encoded token
        expected_type: Reject tokens of any other type

    Returns:
        Optional[TokenClaims]: Claims, or None if the signature, expiry,
        payload or type does not check out
    """
    payload = _decode(token)
    if not payload:
        return None

    try:
        token_type = TokenType(payload.get("typ"))
    except ValueError:
        return None

    if expected_type is not None and token_type is not expected_type:
        return None

    subject = payload.get("sub")
    issued_at = payload.get("iat")
    expires_at = payload.get("exp")
    if not isinstance(subject, str) or not subject:
        return None
    if not isinstance(issued_at, (int, float)) or not isinstance(expires_at, (int, float)):
        return None

    user_id = payload.get("uid")
    return TokenClaims(
        subject=subject,
        type=token_type,
        issued_at=datetime.fromtimestamp(issued_at, tz=timezone.utc),
        expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
        token_id=str(payload.get("jti", "")),
        user_id=user_id if isinstance(user_id, int) else None,
        role=payload.get("role"),
    )


def generate_csrf_token() -> str:
    """
    Generate CSRF token

    Returns:
        str: Signed, single-purpose token carrying a random nonce
    """
    return _encode(
        {"typ": _CSRF_TYPE, "nonce": secrets.token_urlsafe(32)},
        timedelta(minutes=settings.CSRF_TOKEN_EXPIRE_MINUTES),
    )


def validate_csrf_token(token: str) -> bool:
    """Check a token from generate_csrf_token; for clients and future middleware, no route calls it yet."""
    payload = _decode(token)
    return bool(payload) and payload.get("typ") == _CSRF_TYPE
