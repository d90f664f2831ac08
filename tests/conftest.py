"""
Test fixtures for the Bank Card API test suite.

This module provides shared fixtures used across all test files:

  - db_engine / session_factory / db_session: Fresh in-memory SQLite
    database for each test
  - admin_user / alice / bob: Users inserted directly into the database
  - client: Async HTTP test client (unauthenticated)
  - admin_client / alice_client / bob_client: Test clients carrying a JWT
    obtained through the real login endpoint
  - issue_card: Helper that issues a card through the admin endpoint

Key design decisions:
  - In-memory SQLite shared through a StaticPool, so every session in a
    test (request sessions and db_session) sees the same database.
    Tests that write through db_session commit before making requests.
  - Both get_db and get_read_db are overridden, so the application code
    runs its real unit-of-work logic against the test database.
  - raise_app_exceptions=False lets tests observe the 500 responses
    produced by the catch-all exception handler.
"""

import os

# Required settings must exist before bankcards.config is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("CARD_ENCRYPTION_KEY", "12345678901234567890123456789012")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import date, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bankcards.database import Base, enable_sqlite_foreign_keys, get_db, get_read_db
from bankcards.main import app
from bankcards.models.card import BankCard, CardStatus
from bankcards.models.user import Role, User
from bankcards.security import encrypt_card_number, hash_card_number, hash_password


TEST_DATABASE_URL = "sqlite+aiosqlite://"

ADMIN_PASSWORD = "AdminPass123!"
USER_PASSWORD = "UserPass123!"

VISA = "4111111111111111"
MASTERCARD = "5555555555554444"
VISA_2 = "4012888888881881"
MASTERCARD_2 = "5105105105105100"


def future_date(days: int = 365) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Provide an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def _override_db(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_read_db():
        async with session_factory() as session:
            try:
                yield session
            finally:
                await session.rollback()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_read_db] = override_get_read_db
    yield
    app.dependency_overrides.clear()


def _make_client() -> AsyncClient:
    return AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    )


async def _create_user(session_factory, username: str, password: str, role: Role) -> User:
    async with session_factory() as session:
        user = User(
            username=username,
            email=f"{username}@example.com",
            hashed_password=hash_password(password),
            first_name=username.capitalize(),
            last_name="Tester",
            role=role,
            enabled=True,
        )
        session.add(user)
        await session.commit()
        return user


async def _login(client: AsyncClient, username: str, password: str) -> str:
    response = await client.post(
        "/api/auth/login",
        json={"username": username, "password": password},
    )
    assert response.status_code == 200, f"Login failed: {response.text}"
    return response.json()["token"]


@pytest_asyncio.fixture
async def admin_user(session_factory):
    return await _create_user(session_factory, "admin", ADMIN_PASSWORD, Role.ADMIN)


@pytest_asyncio.fixture
async def alice(session_factory):
    return await _create_user(session_factory, "alice", USER_PASSWORD, Role.USER)


@pytest_asyncio.fixture
async def bob(session_factory):
    return await _create_user(session_factory, "bob", USER_PASSWORD, Role.USER)


@pytest_asyncio.fixture
async def client(_override_db):
    """Async HTTP test client with no credentials."""
    async with _make_client() as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_client(_override_db, admin_user):
    async with _make_client() as ac:
        token = await _login(ac, admin_user.username, ADMIN_PASSWORD)
        ac.headers["Authorization"] = f"Bearer {token}"
        yield ac


@pytest_asyncio.fixture
async def alice_client(_override_db, alice):
    async with _make_client() as ac:
        token = await _login(ac, alice.username, USER_PASSWORD)
        ac.headers["Authorization"] = f"Bearer {token}"
        yield ac


@pytest_asyncio.fixture
async def bob_client(_override_db, bob):
    async with _make_client() as ac:
        token = await _login(ac, bob.username, USER_PASSWORD)
        ac.headers["Authorization"] = f"Bearer {token}"
        yield ac


@pytest.fixture
def issue_card(admin_client):
    """
    Issue a card through POST /api/cards and return the response JSON.

    Usage:
        card = await issue_card(alice.id, VISA, "1000.00")
    """

    async def _issue(
        user_id: int,
        card_number: str,
        balance: str = "1000.00",
        holder: str = "TEST USER",
        expiration_date: str | None = None,
    ) -> dict:
        response = await admin_client.post(
            "/api/cards",
            json={
                "cardNumber": card_number,
                "cardHolderName": holder,
                "expirationDate": expiration_date or future_date(),
                "userId": user_id,
                "initialBalance": balance,
            },
        )
        assert response.status_code == 200, f"Issue failed: {response.text}"
        return response.json()

    return _issue


@pytest.fixture
def insert_card(session_factory):
    """
    Insert a card directly into the database, bypassing request validation.

    Used for states the API refuses to create, such as cards that are
    already past their expiration date or that start out BLOCKED.
    """

    async def _insert(
        user: User,
        card_number: str,
        balance: str = "1000.00",
        expiration_date: date | None = None,
        status: CardStatus = CardStatus.ACTIVE,
    ) -> BankCard:
        async with session_factory() as session:
            card = BankCard(
                card_number_encrypted=encrypt_card_number(card_number),
                card_number_hash=hash_card_number(card_number),
                last_four_digits=card_number[-4:],
                card_holder_name="TEST USER",
                expiration_date=expiration_date or date.today() + timedelta(days=365),
                status=status,
                balance=Decimal(balance),
                user_id=user.id,
            )
            session.add(card)
            await session.commit()
            return card

    return _insert
