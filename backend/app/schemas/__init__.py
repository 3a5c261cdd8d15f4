"""Pydantic schemas for API validation"""

from app.schemas.user import UserRole, UserPublic, SignedInUser, UserProfile
from app.schemas.auth import (
    SignUpRequest,
    SignInRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    SignUpResponse,
    SignInResponse,
    PointsRequest,
    AchievementRequest,
)
from app.schemas.response import MessageResponse, ErrorResponse, HealthResponse

__all__ = [
    "UserRole", "UserPublic", "SignedInUser", "UserProfile",
    "SignUpRequest", "SignInRequest", "ForgotPasswordRequest", "ResetPasswordRequest",
    "SignUpResponse", "SignInResponse", "PointsRequest", "AchievementRequest",
    "MessageResponse", "ErrorResponse", "HealthResponse",
]
