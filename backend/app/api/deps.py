"""API dependencies - client identity, authentication and shared services"""

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from app.core.database import get_db
from app.core.security import TokenType, verify_token
from app.core.exceptions import AuthenticationError
from app.models.user import User
from app.services.rate_limiter import LoginRateLimiter, login_rate_limiter
from app.services.user_service import user_service

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"

# Bearer is optional; browsers authenticate with the session cookie
security = HTTPBearer(auto_error=False)


def get_client_ip(request: Request) -> str:
    """
    Best-effort client address

    Prefers the first X-Forwarded-For hop, then X-Real-IP, then the socket peer.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_rate_limiter() -> LoginRateLimiter:
    return login_rate_limiter


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user from the access token

    The accessToken cookie is used when present, otherwise a Bearer header.

    Raises:
        AuthenticationError: If the token is missing, invalid or the user is gone
    """
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token and credentials:
        token = credentials.credentials
    if not token:
        raise AuthenticationError("Not authenticated")

    claims = verify_token(token, TokenType.ACCESS)
    if not claims:
        raise AuthenticationError("Invalid or expired token")

    user = user_service.find_user_by_email(db, claims.subject)
    if not user or (claims.user_id is not None and user.id != claims.user_id):
        raise AuthenticationError("User not found")

    return user
