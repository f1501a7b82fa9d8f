"""
Pytest configuration and fixtures for the ZK REZK storefront tests.

This module provides:
- In-memory SQLite database per test
- A fresh application (rate limiters, session store) per test
- A recording email sender in place of the real provider
- User fixtures (customers, primary admin, secondary admin)
- CSRF and login helpers
"""

# Set environment variables BEFORE importing anything from storefront
import os

os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DATABASE_CREATE_TABLES"] = "false"
os.environ["LOG_FILE_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "console"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["EMAIL_PROVIDER"] = "console"
os.environ["EMAIL_VERIFICATION_REQUIRED"] = "true"
os.environ["PRIMARY_ADMIN_EMAIL"] = "admin@zkrezk.com"
os.environ.pop("PRIMARY_ADMIN_PASSWORD", None)
os.environ.pop("PUBLIC_BASE_URL", None)
os.environ["RATE_LIMIT_ENABLED"] = "true"
# Cheap hashing keeps the suite fast
os.environ["ARGON2_TIME_COST"] = "1"
os.environ["ARGON2_MEMORY_COST"] = "8192"
os.environ["ARGON2_PARALLELISM"] = "1"

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient, Response
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from storefront.api.dependencies import get_email_service
from storefront.core.database import (
    create_database_engine,
    create_session_factory,
    get_db,
    get_session_factory,
)
from storefront.core.security import hash_password
from storefront.main import create_app
from storefront.models import Base, User, UserRole
from storefront.services.email_service import EmailMessage, EmailService

CUSTOMER_PASSWORD = "Cliente123!"
ADMIN_PASSWORD = "Admin123!x"


# ============================================================================
# Email
# ============================================================================
class RecordingEmailSender:
    """Collects messages instead of delivering them."""

    def __init__(self) -> None:
        self.messages: list[EmailMessage] = []
        self.fail = False

    async def send(self, message: EmailMessage) -> None:
        if self.fail:
            raise RuntimeError("provider unavailable")
        self.messages.append(message)

    def to(self, address: str) -> list[EmailMessage]:
        return [m for m in self.messages if m.to == address]


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def email_service(email_sender: RecordingEmailSender) -> EmailService:
    return EmailService(email_sender)


# ============================================================================
# Database Fixtures
# ============================================================================
@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with all tables."""
    engine = create_database_engine("sqlite+aiosqlite:///:memory:")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ============================================================================
# FastAPI Client Fixtures
# ============================================================================
@pytest.fixture
def app(
    session_factory: async_sessionmaker[AsyncSession],
    email_service: EmailService,
) -> FastAPI:
    """A new application per test, wired to the test database and email sender."""
    application = create_app()
    application.state.sessionmaker = session_factory
    application.state.email_service = email_service

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_session_factory] = lambda: session_factory
    application.dependency_overrides[get_email_service] = lambda: email_service
    return application


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def second_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Another browser against the same application (own cookie jar)."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ============================================================================
# Helpers
# ============================================================================
async def fetch_csrf_token(client: AsyncClient) -> str:
    response = await client.get("/api/auth/csrf-token")
    assert response.status_code == 200
    return response.json()["csrfToken"]


@pytest_asyncio.fixture
async def csrf_headers(async_client: AsyncClient) -> dict[str, str]:
    """CSRF header bound to the client's session cookie."""
    return {"X-CSRF-Token": await fetch_csrf_token(async_client)}


async def login(client: AsyncClient, username: str, password: str) -> Response:
    """Fetch a CSRF token for the client's session and log in."""
    token = await fetch_csrf_token(client)
    return await client.post(
        "/api/auth/login",
        json={"username": username, "password": password},
        headers={"X-CSRF-Token": token},
    )


@pytest.fixture
def get_csrf_token():
    """Callable fetching the CSRF token of any client's session."""
    return fetch_csrf_token


@pytest.fixture
def login_with():
    """Callable logging any client in: ``await login_with(client, username, password)``."""
    return login


@pytest.fixture
def login_as(async_client: AsyncClient):
    """Callable logging the default client in."""

    async def _login(username: str, password: str) -> Response:
        return await login(async_client, username, password)

    return _login


async def create_user(
    session: AsyncSession,
    username: str,
    password: str,
    role: UserRole = UserRole.CUSTOMER,
    email_verified: bool = True,
) -> User:
    user = User(
        username=username,
        password_hash=hash_password(password),
        role=role,
        email_verified=email_verified,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


# ============================================================================
# User Fixtures
# ============================================================================
@pytest_asyncio.fixture
async def customer_user(db_session: AsyncSession) -> User:
    """Verified customer with known credentials."""
    return await create_user(db_session, "cliente@example.com", CUSTOMER_PASSWORD)


@pytest_asyncio.fixture
async def unverified_customer(db_session: AsyncSession) -> User:
    return await create_user(
        db_session, "novo@example.com", CUSTOMER_PASSWORD, email_verified=False
    )


@pytest_asyncio.fixture
async def primary_admin(db_session: AsyncSession) -> User:
    """The admin matching PRIMARY_ADMIN_EMAIL."""
    return await create_user(db_session, "admin@zkrezk.com", ADMIN_PASSWORD, role=UserRole.ADMIN)


@pytest_asyncio.fixture
async def secondary_admin(db_session: AsyncSession) -> User:
    return await create_user(
        db_session, "equipe@zkrezk.com", ADMIN_PASSWORD, role=UserRole.ADMIN
    )
