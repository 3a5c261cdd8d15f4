"""User service - account lookup and lifecycle updates"""

from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime, timezone
import random
import logging

from app.models.user import User
from app.core.security import hash_password, generate_email_verification_token

logger = logging.getLogger(__name__)

AVATARS = ["🦁", "🐯", "🐻", "🐼", "🐨", "🦊", "🐰", "🐸", "🐵", "🦉"]

DEMO_PASSWORD = "Password123!"
DEMO_USERS = [
    {"username": "alex_learner", "email": "alex@example.com", "name": "Alex", "age": 7, "role": "child"},
    {"username": "parent_demo", "email": "parent@example.com", "name": "Parent Demo", "age": None, "role": "parent"},
]


class UserService:
    """Directory of user accounts"""

    @staticmethod
    def find_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email (case-insensitive)"""
        if not email:
            return None
        return db.query(User).filter(User.email == email.strip().lower()).first()

    @staticmethod
    def find_user_by_username(db: Session, username: str) -> Optional[User]:
        """Get user by username (case-insensitive)"""
        if not username:
            return None
        return db.query(User).filter(func.lower(User.username) == username.strip().lower()).first()

    @staticmethod
    def find_user_by_email_or_username(db: Session, identifier: str) -> Optional[User]:
        """Email match wins over username match"""
        return (
            UserService.find_user_by_email(db, identifier)
            or UserService.find_user_by_username(db, identifier)
        )

    @staticmethod
    def find_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def check_email_exists(db: Session, email: str) -> bool:
        return UserService.find_user_by_email(db, email) is not None

    @staticmethod
    def check_username_exists(db: Session, username: str) -> bool:
        return UserService.find_user_by_username(db, username) is not None

    @staticmethod
    def create_user(
        db: Session,
        *,
        username: str,
        email: str,
        name: str,
        role: str,
        password_hash: str,
        email_verification_token: Optional[str],
        age: Optional[int] = None,
    ) -> User:
        """
        Create new, unverified user

        Args:
            db: Database session
            username: Unique username
            email: Unique email (stored lowercased)
            name: Display name
            role: child, parent or teacher
            password_hash: bcrypt hash; the plain password is never stored
            email_verification_token: Token the account must present to verify
            age: Age, kept only for child accounts

        Returns:
            Created user
        """
        user = User(
            username=username,
            email=email.strip().lower(),
            name=name,
            age=age if role == "child" else None,
            role=role,
            avatar=random.choice(AVATARS),
            password_hash=password_hash,
            is_email_verified=False,
            email_verification_token=email_verification_token,
            points=0,
            level=1,
            achievements=[],
        )

        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info(f"Created user: {user.username} (role: {user.role})")
        return user

    @staticmethod
    def set_password_reset_token(db: Session, email: str, token: str) -> bool:
        """Replace any outstanding reset token for the account"""
        updated = (
            db.query(User)
            .filter(User.email == email.strip().lower())
            .update({User.password_reset_token: token}, synchronize_session="fetch")
        )
        db.commit()
        return updated > 0

    @staticmethod
    def reset_user_password(db: Session, email: str, token: str, new_password_hash: str) -> bool:
        """
        Replace the password hash and consume the reset token

        Only matches while token is the account's current reset token, so a
        superseded or already used token changes nothing.

        Returns:
            True if the password was changed
        """
        updated = (
            db.query(User)
            .filter(User.email == email.strip().lower(), User.password_reset_token == token)
            .update(
                {User.password_hash: new_password_hash, User.password_reset_token: None},
                synchronize_session="fetch",
            )
        )
        db.commit()
        if updated:
            logger.info(f"Password reset for account {email}")
        return updated > 0

    @staticmethod
    def verify_user_email(db: Session, email: str, token: str) -> bool:
        """
        Mark the account verified and consume the verification token

        Returns:
            True if this call verified the account
        """
        updated = (
            db.query(User)
            .filter(User.email == email.strip().lower(), User.email_verification_token == token)
            .update(
                {User.is_email_verified: True, User.email_verification_token: None},
                synchronize_session="fetch",
            )
        )
        db.commit()
        if updated:
            logger.info(f"Email verified for account {email}")
        return updated > 0

    @staticmethod
    def update_user_last_login(db: Session, user: User) -> User:
        user.last_login = datetime.now(timezone.utc)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def seed_demo_users(db: Session) -> List[User]:
        """
        Create the pre-verified demo accounts that are missing

        Returns:
            Newly created users
        """
        created = []
        for data in DEMO_USERS:
            if UserService.check_email_exists(db, data["email"]):
                continue
            user = UserService.create_user(
                db,
                password_hash=hash_password(DEMO_PASSWORD),
                email_verification_token=generate_email_verification_token(data["email"]),
                **data,
            )
            UserService.verify_user_email(db, user.email, user.email_verification_token)
            db.refresh(user)
            created.append(user)
        return created


# Singleton instance
user_service = UserService()
