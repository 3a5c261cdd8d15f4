"""Current-user profile and learning progress routes"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.auth import PointsRequest, AchievementRequest
from app.schemas.user import UserProfile
from app.services.progress_service import progress_service
from app.api.deps import get_current_user
from app.models.user import User

router = APIRouter()


@router.get("/me", response_model=UserProfile)
def get_my_profile(
    current_user: User = Depends(get_current_user)
):
    """
    Get current user profile

    Args:
        current_user: Current authenticated user

    Returns:
        Profile with level, points and achievements
    """
    return UserProfile.model_validate(current_user)


@router.post("/me/points", response_model=UserProfile)
def add_points(
    body: PointsRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Award points to the current user"""
    user = progress_service.add_points(db, current_user, body.points)
    return UserProfile.model_validate(user)


@router.post("/me/achievements", response_model=UserProfile)
def add_achievement(
    body: AchievementRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record an achievement for the current user"""
    user = progress_service.add_achievement(db, current_user, body.achievement)
    return UserProfile.model_validate(user)
