import pytest

from app.core.exceptions import ValidationError
from app.services.progress_service import level_for_points, progress_service


def test_level_for_points():
    assert level_for_points(0) == 1
    assert level_for_points(99) == 1
    assert level_for_points(100) == 2
    assert level_for_points(245) == 3


def test_add_points_raises_level(db_session, make_user):
    user = make_user()
    user = progress_service.add_points(db_session, user, 150)
    assert user.points == 150
    assert user.level == 2


def test_level_never_goes_down(db_session, make_user):
    user = make_user()
    user.level = 5
    db_session.commit()
    user = progress_service.add_points(db_session, user, 10)
    assert user.level == 5


def test_add_points_rejects_non_positive(db_session, make_user):
    user = make_user()
    with pytest.raises(ValidationError):
        progress_service.add_points(db_session, user, 0)


def test_achievements_are_recorded_once(db_session, make_user):
    user = make_user()
    progress_service.add_achievement(db_session, user, "Reading Star")
    user = progress_service.add_achievement(db_session, user, "Reading Star")
    user = progress_service.add_achievement(db_session, user, "Memory Master")
    assert user.achievements == ["Reading Star", "Memory Master"]


def test_blank_achievement_is_rejected(db_session, make_user):
    user = make_user()
    with pytest.raises(ValidationError):
        progress_service.add_achievement(db_session, user, "  <> ")
