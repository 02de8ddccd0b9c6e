import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_INIT_MODE", "off")
os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "residence-auth-tests.log"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.security import get_password_hash
from app.core.tokens import TokenCodec, TokenSettings
from app.models.user import User
from app.services.authenticator import Authenticator, get_authenticator
from app.services.rate_limiter import rate_limiter
from app.services.revocation_ledger import RevocationLedger
from app.services.token_service import TokenService, get_token_service

ACCESS_TTL = 15 * 60
REFRESH_TTL = 7 * 86400
RESET_TTL = 10 * 60


class FakeClock:
    def __init__(self, now: int = 1_700_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def token_settings():
    return TokenSettings(
        secret="test-secret-0123456789abcdef0123456789abcdef",
        access_ttl=ACCESS_TTL,
        refresh_ttl=REFRESH_TTL,
        reset_password_ttl=RESET_TTL,
    )


@pytest.fixture
def codec(token_settings, clock):
    return TokenCodec(token_settings, clock=clock)


@pytest.fixture
def ledger(clock):
    return RevocationLedger(clock=clock)


@pytest.fixture
def tokens(codec, ledger):
    return TokenService(codec, ledger)


@pytest.fixture
def authenticator(tokens):
    return Authenticator(tokens)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def broken_db():
    """Session whose store cannot be reached."""
    engine = create_engine("sqlite:////nonexistent-dir/residence/unreachable.db")
    session = sessionmaker(bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def make_user(db):
    def _make(email="resident@example.com", role="resident", password=None, is_active=True):
        user = User(
            email=email,
            password_hash=get_password_hash(password) if password else "hash",
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def client(db, tokens, authenticator):
    from app.main import app

    rate_limiter.reset()
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_token_service] = lambda: tokens
    app.dependency_overrides[get_authenticator] = lambda: authenticator
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        rate_limiter.reset()

