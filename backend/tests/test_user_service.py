from app.core.security import generate_password_reset_token, verify_password
from app.models.user import User
from app.services.user_service import DEMO_PASSWORD, user_service
from conftest import PASSWORD


def test_create_user_stores_only_the_hash(db_session, make_user):
    user = make_user(verified=False)
    assert user.password_hash != PASSWORD
    assert verify_password(PASSWORD, user.password_hash)
    assert user.is_email_verified is False
    assert user.email_verification_token
    assert user.avatar
    assert user.level == 1 and user.points == 0 and user.achievements == []


def test_adult_accounts_do_not_keep_age(make_user):
    parent = make_user(username="pat", email="pat@example.com", role="parent", age=40)
    assert parent.age is None


def test_lookups_are_case_insensitive(db_session, make_user):
    make_user(username="Sam_Reader", email="Sam@Example.com")
    assert user_service.find_user_by_email(db_session, "SAM@example.COM") is not None
    assert user_service.find_user_by_username(db_session, "sam_reader") is not None
    assert user_service.check_email_exists(db_session, "sam@example.com")
    assert user_service.check_username_exists(db_session, "SAM_READER")
    assert not user_service.check_email_exists(db_session, "nobody@example.com")


def test_find_by_email_or_username(db_session, make_user):
    user = make_user()
    assert user_service.find_user_by_email_or_username(db_session, "sam@example.com").id == user.id
    assert user_service.find_user_by_email_or_username(db_session, "sam_reader").id == user.id
    assert user_service.find_user_by_email_or_username(db_session, "ghost") is None


def test_verify_user_email_consumes_token(db_session, make_user):
    user = make_user(verified=False)
    token = user.email_verification_token

    assert user_service.verify_user_email(db_session, user.email, token)
    db_session.refresh(user)
    assert user.is_email_verified
    assert user.email_verification_token is None

    assert not user_service.verify_user_email(db_session, user.email, token)


def test_reset_token_is_single_use(db_session, make_user):
    user = make_user()
    token = generate_password_reset_token(user.email)
    assert user_service.set_password_reset_token(db_session, user.email, token)

    assert user_service.reset_user_password(db_session, user.email, token, "new-hash")
    db_session.refresh(user)
    assert user.password_hash == "new-hash"
    assert user.password_reset_token is None

    assert not user_service.reset_user_password(db_session, user.email, token, "other-hash")
    db_session.refresh(user)
    assert user.password_hash == "new-hash"


def test_new_reset_token_supersedes_the_old_one(db_session, make_user):
    user = make_user()
    first = generate_password_reset_token(user.email)
    second = generate_password_reset_token(user.email)
    user_service.set_password_reset_token(db_session, user.email, first)
    user_service.set_password_reset_token(db_session, user.email, second)

    assert not user_service.reset_user_password(db_session, user.email, first, "hash-1")
    assert user_service.reset_user_password(db_session, user.email, second, "hash-2")


def test_set_reset_token_for_unknown_email(db_session):
    assert not user_service.set_password_reset_token(db_session, "ghost@example.com", "token")


def test_update_last_login(db_session, make_user):
    user = make_user()
    assert user.last_login is None
    user = user_service.update_user_last_login(db_session, user)
    assert user.last_login is not None


def test_seed_demo_users_is_idempotent(db_session):
    created = user_service.seed_demo_users(db_session)
    assert {u.username for u in created} == {"alex_learner", "parent_demo"}
    assert all(u.is_email_verified for u in created)
    alex = user_service.find_user_by_email(db_session, "alex@example.com")
    assert verify_password(DEMO_PASSWORD, alex.password_hash)
    assert alex.age == 7

    assert user_service.seed_demo_users(db_session) == []
    assert db_session.query(User).count() == 2
