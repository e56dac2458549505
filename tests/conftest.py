"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own engine on an in-memory aiosqlite database.
   StaticPool keeps the single connection alive, so every session in
   the test sees the same tables and rows.
2. The app's get_db is overridden to yield the test's session, so
   fixtures and requests share one identity map.
3. The engine is disposed after the test — the database vanishes.

Identity is proven the way API clients prove it: a bearer token minted
with create_access_token for a fixture user. The assertion verifier and
the mail transport are swapped for in-memory fakes.
"""

import os

# Must be set before eisenhower.config is imported anywhere.
os.environ["EISENHOWER_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["EISENHOWER_STUDY_NAME"] = ""
os.environ["EISENHOWER_EMAIL_TRANSPORT"] = "log"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from eisenhower.auth.jwt import create_access_token
from eisenhower.auth.verifier import VerificationError, get_verifier
from eisenhower.db.engine import get_db
from eisenhower.db.models import Base, User
from eisenhower.main import app
from eisenhower.services.mail import OutgoingMail, get_mail_transport

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


# ═══════════════════════════════════════════════════════════
# Fakes
# ═══════════════════════════════════════════════════════════


class FakeVerifier:
    """Accepts the assertions it was told about, rejects everything else."""

    def __init__(self):
        self.assertions: dict[str, str] = {}

    async def verify(self, assertion: str) -> str:
        try:
            return self.assertions[assertion]
        except KeyError:
            raise VerificationError("Assertion rejected")


class RecordingTransport:
    """Mail transport that keeps messages in memory."""

    def __init__(self):
        self.sent: list[OutgoingMail] = []
        self.refuse: set[str] = set()

    async def send(self, message: OutgoingMail) -> str:
        if message.to_address in self.refuse:
            raise OSError(f"relay refused {message.to_address}")
        self.sent.append(message)
        return f"<{len(self.sent)}@test>"


# ═══════════════════════════════════════════════════════════
# Database
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def engine():
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(engine):
    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()


async def make_user(db: AsyncSession, email: str, **attrs) -> User:
    user = User(email=email, name=attrs.pop("name", email.split("@")[0]), **attrs)
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture()
async def alice(db_session):
    return await make_user(db_session, "alice@example.com", name="Alice")


@pytest_asyncio.fixture()
async def bob(db_session):
    return await make_user(db_session, "bob@example.com", name="Bob")


@pytest_asyncio.fixture()
async def admin(db_session):
    return await make_user(db_session, "admin@example.com", name="Admin", is_admin=True)


# ═══════════════════════════════════════════════════════════
# HTTP
# ═══════════════════════════════════════════════════════════


@pytest.fixture()
def auth():
    """auth(user_or_email) → headers carrying a bearer token for it."""

    def headers(who) -> dict[str, str]:
        email = who if isinstance(who, str) else who.email
        return {"Authorization": f"Bearer {create_access_token(email)}"}

    return headers


@pytest.fixture()
def verifier():
    return FakeVerifier()


@pytest.fixture()
def mail():
    return RecordingTransport()


@pytest_asyncio.fixture()
async def client(db_session, verifier, mail):
    """HTTP client with the app's database, verifier and mail swapped out."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_verifier] = lambda: verifier
    app.dependency_overrides[get_mail_transport] = lambda: mail

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.write_observers = []
