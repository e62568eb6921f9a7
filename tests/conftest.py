import os

# Secrets and DB URL must exist before importing skintrack.main (it checks secrets at import time).
os.environ.setdefault("JWT_SECRET", "test_jwt_secret_0123456789abcdef0123")
os.environ.setdefault("REFRESH_SECRET", "test_refresh_secret_0123456789abcdef")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from skintrack.core.base import Base
from skintrack.core import config as app_config
from skintrack.core.security import hash_password

# Import models so they register with SQLAlchemy metadata.
from skintrack.models.user import Profile, User  # noqa: F401
from skintrack.models.refresh_token import RefreshToken  # noqa: F401

from skintrack.core.database import get_db
from skintrack.services.auth import AuthContext
from skintrack.services.rate_limiter import reset_rate_limiter

TEST_EMAIL = "toto@example.com"
TEST_PASSWORD = "Password123"


@pytest.fixture(scope="session")
def db_engine():
    # In-memory SQLite for fast, isolated tests.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture()
def db_session(db_engine):
    # The in-memory DB persists across tests with StaticPool; reset schema per test.
    Base.metadata.drop_all(bind=db_engine)
    Base.metadata.create_all(bind=db_engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def _reset_mutable_settings():
    """
    Tests sometimes tweak global settings (app_config.settings.*). Because that object is
    process-global, restore values after each test to avoid cross-test coupling.
    """
    keys = [
        "ENV",
        "RATE_LIMIT_ENABLED",
        "RATE_LIMIT_DEFAULT_MAX_REQUESTS",
        "RATE_LIMIT_DEFAULT_WINDOW_SECONDS",
        "PASSWORD_MIN_LENGTH",
        "PASSWORD_MAX_LENGTH",
    ]
    original = {k: getattr(app_config.settings, k) for k in keys}
    reset_rate_limiter()
    try:
        yield
    finally:
        for k, v in original.items():
            setattr(app_config.settings, k, v)
        app_config.settings.RATE_LIMIT_ENABLED = False
        reset_rate_limiter()


@pytest.fixture()
def ctx(db_session):
    return AuthContext(
        db=db_session,
        jwt_secret=app_config.settings.JWT_SECRET,
        refresh_secret=app_config.settings.REFRESH_SECRET,
        ip="127.0.0.1",
        user_agent="TestBrowser/1.0",
    )


@pytest.fixture()
def make_user(db_session):
    def _make_user(email: str = TEST_EMAIL, password: str = TEST_PASSWORD) -> User:
        user = User(email=email, password_hash=hash_password(password))
        db_session.add(user)
        db_session.flush()
        db_session.add(Profile(user_id=user.id))
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def user(make_user):
    return make_user()


@pytest.fixture()
def app(db_session):
    from skintrack.main import app as fastapi_app

    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c
