"""Request and response bodies for the account flows

Request fields are deliberately permissive: the handlers validate them
and report every problem at once instead of failing on the first.
"""

from typing import Optional

from app.schemas.user import CamelModel, UserPublic, SignedInUser


class SignUpRequest(CamelModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None
    name: Optional[str] = None
    age: Optional[int] = None
    role: Optional[str] = None


class SignInRequest(CamelModel):
    email_or_username: Optional[str] = None
    password: Optional[str] = None
    remember_me: bool = False


class ForgotPasswordRequest(CamelModel):
    email: Optional[str] = None


class ResetPasswordRequest(CamelModel):
    token: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None


class SignUpResponse(CamelModel):
    message: str
    user: UserPublic
    csrf_token: str


class SignInResponse(CamelModel):
    message: str
    user: SignedInUser


class PointsRequest(CamelModel):
    points: int


class AchievementRequest(CamelModel):
    achievement: str
