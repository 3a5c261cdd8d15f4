"""User model"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Index
from sqlalchemy.sql import func
from app.core.database import Base


USER_ROLES = ("child", "parent", "teacher")


class User(Base):
    """Account record for children, parents and teachers"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(20), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    age = Column(Integer, nullable=True)
    role = Column(String(20), default="child", nullable=False)
    avatar = Column(String(16), nullable=True)
    password_hash = Column(String(255), nullable=False)
    is_email_verified = Column(Boolean, default=False, nullable=False)

    # Only the most recently issued token of each kind is accepted.
    email_verification_token = Column(String(1024), nullable=True)
    password_reset_token = Column(String(1024), nullable=True)

    points = Column(Integer, default=0, nullable=False)
    level = Column(Integer, default=1, nullable=False)
    achievements = Column(JSON, default=list, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login = Column(DateTime(timezone=True))

    __table_args__ = (
        Index('idx_users_username', 'username'),
        Index('idx_users_email', 'email'),
        Index('idx_users_role', 'role'),
    )

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"
