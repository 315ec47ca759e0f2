"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from softphone.accounts.models import Profile, TelephonyAccount
from softphone.auth.jwt import JWTService
from softphone.config import Settings, get_settings
from softphone.shared.database import Base, get_db_session
from softphone.telephony.config import ProviderType, TelephonyConfig, get_telephony_config
from softphone.telephony.factory import ProviderFactory, get_provider_factory
from softphone.telephony.mock_adapter import MockTelephonyAdapter

import softphone.contacts.models  # noqa: F401
import softphone.history.models  # noqa: F401

WEBHOOK_BASE_URL = "https://gateway.example.com"
BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        app_env="dev",
        debug=True,
        database_url="sqlite+aiosqlite://",
        jwt_secret_key="test-secret-key-for-testing-only-0123456789",
        jwt_algorithm="HS256",
        jwt_audience="",
        jwt_access_token_expire_minutes=60,
    )


@pytest.fixture
def telephony_config() -> TelephonyConfig:
    """Mock provider, no operator override account."""
    return TelephonyConfig(
        provider_type=ProviderType.MOCK,
        webhook_base_url=WEBHOOK_BASE_URL,
        account_sid="",
        auth_token="",
        application_sid="",
        from_number="",
        token_ttl_seconds=3600,
    )


@pytest.fixture
def mock_provider() -> MockTelephonyAdapter:
    return MockTelephonyAdapter()


@pytest.fixture
def provider_factory(mock_provider: MockTelephonyAdapter) -> ProviderFactory:
    return mock_provider.for_credentials


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy own BEGIN so SAVEPOINTs behave on pysqlite.
    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


AccountFactory = Callable[..., Awaitable[TelephonyAccount]]


@pytest.fixture
def make_account(db_session: AsyncSession) -> AccountFactory:
    """Insert an account; ``age`` orders rows by creation time (higher is older)."""

    async def _make(
        owner_id: UUID,
        name: str = "Main",
        provider_account_id: str = "AC00000000000000000000000000000001",
        provider_secret: str = "auth-token-0123456789abcdef0123456789",
        application_id: str | None = "AP00000000000000000000000000000001",
        phone_number: str | None = "+14155550100",
        is_default: bool = False,
        age: int = 0,
    ) -> TelephonyAccount:
        created = BASE_TIME - timedelta(minutes=age)
        account = TelephonyAccount(
            owner_id=owner_id,
            account_name=name,
            provider_account_id=provider_account_id,
            provider_secret=provider_secret,
            application_id=application_id,
            phone_number=phone_number,
            is_default=is_default,
            created_at=created,
            updated_at=created,
        )
        db_session.add(account)
        await db_session.flush()
        return account

    return _make


@pytest.fixture
def make_profile(db_session: AsyncSession) -> Callable[..., Awaitable[Profile]]:
    async def _make(
        owner_id: UUID,
        provider_account_id: str | None = "AC00000000000000000000000000000099",
        provider_secret: str | None = "legacy-token-0123456789abcdef01234567",
        application_id: str | None = None,
        phone_number: str | None = "+14155550199",
    ) -> Profile:
        profile = Profile(
            id=owner_id,
            provider_account_id=provider_account_id,
            provider_secret=provider_secret,
            application_id=application_id,
            phone_number=phone_number,
        )
        db_session.add(profile)
        await db_session.flush()
        return profile

    return _make


@pytest.fixture
def auth_headers(test_settings: Settings, owner_id: UUID) -> dict[str, str]:
    token = JWTService(test_settings).create_access_token(owner_id, email="user@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def api_client(
    test_settings: Settings,
    telephony_config: TelephonyConfig,
    provider_factory: ProviderFactory,
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """ASGI client with DB, settings and provider dependencies overridden."""
    from softphone.main import app

    async def _override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _override_get_db_session
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_telephony_config] = lambda: telephony_config
    app.dependency_overrides[get_provider_factory] = lambda: provider_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
