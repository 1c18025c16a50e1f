"""Shared test infrastructure for the Relationship OS test suite.

Provides:
- db_session: async SQLite in-memory session with all tables created
- settings: frozen Settings with test secrets and no external providers
- make_user: factory for User rows (optionally with a password)
- auth_headers: builds a Bearer header for a user
- make_quote: factory that creates a SENT quote through QuoteService
- client: httpx AsyncClient bound to the app with db/settings overridden
"""

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from relationship_os.infra.database import Base

import relationship_os.domain.models  # noqa: F401

from relationship_os.app.config import Settings, get_settings
from relationship_os.domain.enums import Role
from relationship_os.domain.models import User
from relationship_os.domain.schemas import QuoteLineCreate
from relationship_os.infra.database import get_db
from relationship_os.services.auth_service import create_access_token, hash_password
from relationship_os.services.quote_service import QuoteService


# ---------------------------------------------------------------------------
# Database session fixture
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_session():
    """Async SQLite in-memory session with all tables created.

    Creates a fresh engine + tables for each test, yields a session,
    then rolls back and tears down.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        jwt_secret_key="test-secret",
        frontend_url="http://app.test",
        sso_domain="",
        sso_audience="",
        gemini_api_key="",
        stripe_secret_key="",
        debug=True,
    )


# ---------------------------------------------------------------------------
# User factory
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db_session):
    """Factory that creates a User row.

    Usage:
        seller = await make_user(role=Role.SELLER, email="s@test.com")
    """
    counter = {"n": 0}

    async def _factory(
        role: Role = Role.CUSTOMER,
        email: str | None = None,
        name: str | None = None,
        password: str | None = None,
        company_name: str | None = None,
        external_sub: str | None = None,
    ) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"{role.value.lower()}{counter['n']}@test.com",
            name=name or f"{role.value.title()} {counter['n']}",
            role=role.value,
            password_hash=hash_password(password) if password else None,
            company_name=company_name,
            external_sub=external_sub,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _factory


@pytest.fixture
def auth_headers(settings):
    def _headers(user: User) -> dict:
        token = create_access_token(user.id, user.role, settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ---------------------------------------------------------------------------
# Quote factory
# ---------------------------------------------------------------------------

DEFAULT_LINES = [
    {"type": "SUBSCRIPTION_SERVICE", "name": "Platform", "unitPrice": 99.99, "quantity": 1, "billingCycle": "MONTHLY"},
    {"type": "DISCOUNT", "name": "Launch discount", "unitPrice": -10, "quantity": 1},
]


@pytest.fixture
def make_quote(db_session):
    """Factory that creates a SENT quote from seller to customer.

    Usage:
        quote = await make_quote(seller, customer, lines=[{...}])
    """
    async def _factory(seller: User, customer: User, lines: list[dict] | None = None, notes=None):
        parsed = [QuoteLineCreate.model_validate(line) for line in (lines or DEFAULT_LINES)]
        return await QuoteService(db_session).create_quote(seller, customer.id, parsed, notes=notes)

    return _factory


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest.fixture
async def client(db_session, settings):
    """AsyncClient against the app, sharing the test session and settings."""
    from relationship_os.app.main import app

    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: settings

    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
