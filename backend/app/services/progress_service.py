"""Learning progress: points, levels and achievements"""

import logging

from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.core.security import sanitize_input
from app.models.user import User

logger = logging.getLogger(__name__)

POINTS_PER_LEVEL = 100


def level_for_points(points: int) -> int:
    return points // POINTS_PER_LEVEL + 1


class ProgressService:
    """Award points and achievements to a user"""

    @staticmethod
    def add_points(db: Session, user: User, points: int) -> User:
        """
        Add points; the level follows the total but never goes down

        Raises:
            ValidationError: If points is not positive
        """
        if points <= 0:
            raise ValidationError("Validation failed", {"points": ["Points must be a positive number"]})

        user.points = (user.points or 0) + points
        user.level = max(user.level or 1, level_for_points(user.points))
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def add_achievement(db: Session, user: User, achievement: str) -> User:
        """Record an achievement once; repeats are ignored"""
        name = sanitize_input(achievement)
        if not name:
            raise ValidationError("Validation failed", {"achievement": ["Achievement name is required"]})

        current = list(user.achievements or [])
        if name not in current:
            # Reassign so the JSON column is flagged dirty
            user.achievements = current + [name]
            db.commit()
            db.refresh(user)
            logger.info(f"User {user.id} earned achievement '{name}'")
        return user


progress_service = ProgressService()
