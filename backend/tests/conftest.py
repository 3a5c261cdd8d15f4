import os
import tempfile

# Configure the app before it is imported
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EMAIL_BACKEND"] = "memory"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SEED_DEMO_USERS"] = "false"
os.environ["LOG_FILE"] = os.path.join(tempfile.gettempdir(), "eduspark-tests.log")

import re  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.main import app  # noqa: E402
from app.api.deps import get_rate_limiter  # noqa: E402
from app.core.database import Base, get_db  # noqa: E402
from app.core.security import generate_email_verification_token, hash_password  # noqa: E402
from app.services.email_service import email_service  # noqa: E402
from app.services.rate_limiter import InMemoryRateLimitStore, LoginRateLimiter  # noqa: E402
from app.services.user_service import user_service  # noqa: E402

PASSWORD = "Sunny.Day1"


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def token_from_email(template) -> str:
    match = re.search(r"token=([A-Za-z0-9_\-\.]+)", template.text)
    assert match, template.text
    return match.group(1)


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    return LoginRateLimiter(InMemoryRateLimitStore(), max_attempts=5, window_seconds=15 * 60, clock=clock)


@pytest.fixture
def outbox():
    email_service.outbox.clear()
    yield email_service.outbox
    email_service.outbox.clear()


@pytest.fixture
def client(db_session, rate_limiter, outbox):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    def _make_user(
        username="sam_reader",
        email="sam@example.com",
        password=PASSWORD,
        name="Sam",
        role="child",
        age=8,
        verified=True,
    ):
        user = user_service.create_user(
            db_session,
            username=username,
            email=email,
            name=name,
            role=role,
            age=age,
            password_hash=hash_password(password),
            email_verification_token=generate_email_verification_token(email),
        )
        if verified:
            user_service.verify_user_email(db_session, user.email, user.email_verification_token)
            db_session.refresh(user)
        return user

    return _make_user
