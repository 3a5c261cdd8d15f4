"""User schemas"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    """User role enumeration"""
    CHILD = "child"
    PARENT = "parent"
    TEACHER = "teacher"


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserPublic(CamelModel):
    """Fields returned right after sign-up"""
    id: int
    username: str
    email: str
    name: str
    age: Optional[int] = None
    role: str
    avatar: Optional[str] = None
    is_email_verified: bool


class SignedInUser(UserPublic):
    """Fields returned on sign-in"""
    last_login: Optional[datetime] = None


class UserProfile(SignedInUser):
    """Current user with learning progress"""
    level: int
    points: int
    achievements: List[str]
