"""
Shared test fixtures for LearnPath.

Provides RSA keys for JWT signing, a mocked database session for
boundary tests, a throwaway SQLite database for service tests, and
async HTTP clients wired to either.
"""

import os
import uuid
from unittest.mock import AsyncMock, MagicMock

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from learnpath.core import security
from learnpath.database import Base, get_db
from learnpath.models import User
from learnpath.services.email_service import ConsoleMailer, get_mailer, set_mailer


# --- RSA Key Fixtures ---


@pytest.fixture(scope="session")
def test_rsa_keys():
    """Generate a temporary RSA keypair for test JWT signing."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )

    return {"private_key": private_pem, "public_key": public_pem}


@pytest.fixture(autouse=True)
def jwt_keys(test_rsa_keys):
    """Sign access tokens with the test RSA keys for every test."""
    security.configure_keys(
        private_key=test_rsa_keys["private_key"],
        public_key=test_rsa_keys["public_key"],
        algorithm="RS256",
    )


# --- Mailer ---


class RecordingMailer(ConsoleMailer):
    """Console mailer that also remembers the last code sent to each address."""

    def __init__(self):
        self.sent: dict[str, str] = {}

    async def send_otp(self, email: str, otp: str) -> bool:
        self.sent[email] = otp
        return await super().send_otp(email, otp)


@pytest.fixture
def mailer():
    recording = RecordingMailer()
    set_mailer(recording)
    yield recording
    set_mailer(None)


# --- Mock Database Session ---


@pytest.fixture
def mock_db():
    """AsyncMock database session."""
    db = AsyncMock()

    mock_result = MagicMock()
    mock_result.scalar_one_or_none = MagicMock(return_value=None)
    db.execute = AsyncMock(return_value=mock_result)
    db.scalar = AsyncMock(return_value=None)
    db.get = AsyncMock(return_value=None)
    db.flush = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()

    return db


# --- SQLite Database ---


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Fresh file-backed SQLite database per test (shared across connections)."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def make_user(db_session):
    """Factory that inserts a User and returns it."""

    async def _make(email: str = "learner@example.com", **overrides) -> User:
        user = User(email=email, **overrides)
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


# --- HTTP Clients ---


@pytest_asyncio.fixture
async def client(mock_db, mailer):
    """Async HTTP test client backed by the mocked session."""
    from learnpath.main import app

    async def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def db_client(session_factory, mailer):
    """Async HTTP test client backed by the SQLite database."""
    from learnpath.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Factory for a valid ``Authorization`` header."""

    def _headers(user_id: uuid.UUID, email: str = "learner@example.com") -> dict[str, str]:
        token = security.create_access_token(str(user_id), email)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def no_cooldown(monkeypatch):
    """Allow back-to-back OTP requests for the same email."""
    from learnpath.config import settings

    monkeypatch.setattr(settings, "OTP_RESEND_COOLDOWN_SECONDS", 0)
