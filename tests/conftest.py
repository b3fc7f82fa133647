"""Test fixtures for the Affiliate Tracker test suite."""

import os
from collections.abc import AsyncGenerator, Generator
from datetime import datetime, timezone
from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.pool import StaticPool

# Set test environment variables BEFORE importing app modules
os.environ.update({
    "DATABASE_URL": "sqlite+aiosqlite://",
    "APP_BASE_URL": "http://localhost:8000",
    "FRONTEND_ORIGIN": "https://app.example.com",
    "FRONTEND_SIGNUP_PATH": "/signup",
    "REFERRAL_LINK_STYLE": "path",
    "REFERRAL_CODE_LENGTH": "9",
    "UNKNOWN_CODE_POLICY": "reject",
    "AUTO_CREATE_TABLES": "false",
    "ENVIRONMENT": "test",
    "LOG_LEVEL": "WARNING",
})

from app.config import ReferralConfig  # noqa: E402
from app.database import build_engine, build_session_factory, drop_db, get_session, init_db  # noqa: E402
from app.exceptions import DuplicateKey, StorageError  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models.click_event import ClickEvent  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.click_recorder import ClickRecorder  # noqa: E402
from app.services.code_issuer import CodeIssuer  # noqa: E402
from app.services.store import SQLAlchemyReferralStore  # noqa: E402


class InMemoryReferralStore:
    """ReferralStore fake with knobs for simulating races and outages.

    ``stale_wallet_reads`` / ``stale_code_reads``: number of upcoming lookups
    that miss even when the row exists (the window between another writer's
    insert and our check). Unique constraints are still enforced on insert.
    ``broken``: every call raises StorageError.
    """

    def __init__(self):
        self.users: list[User] = []
        self.clicks: list[ClickEvent] = []
        self.stale_wallet_reads = 0
        self.stale_code_reads = 0
        self.broken = False
        self.insert_attempts = 0

    def _check(self) -> None:
        if self.broken:
            raise StorageError("store unavailable")

    async def find_user_by_wallet(self, wallet_address: str) -> User | None:
        self._check()
        if self.stale_wallet_reads > 0:
            self.stale_wallet_reads -= 1
            return None
        return next((u for u in self.users if u.wallet_address == wallet_address), None)

    async def find_user_by_code(self, code: str) -> User | None:
        self._check()
        if self.stale_code_reads > 0:
            self.stale_code_reads -= 1
            return None
        return next((u for u in self.users if u.referral_code == code), None)

    async def insert_user(self, name, wallet_address, referral_code, referral_link) -> User:
        self._check()
        self.insert_attempts += 1
        for u in self.users:
            if u.wallet_address == wallet_address or u.referral_code == referral_code:
                raise DuplicateKey("duplicate key")
        now = datetime.now(timezone.utc)
        user = User(
            id=uuid4(),
            name=name,
            wallet_address=wallet_address,
            referral_code=referral_code,
            referral_link=referral_link,
            created_at=now,
            updated_at=now,
        )
        self.users.append(user)
        return user

    async def insert_click(self, user_id, referral_code, ip, user_agent, referrer) -> ClickEvent:
        self._check()
        click = ClickEvent(
            id=uuid4(),
            user_id=user_id,
            referral_code=referral_code,
            ip=ip,
            user_agent=user_agent,
            referrer=referrer,
            created_at=datetime.now(timezone.utc),
        )
        self.clicks.append(click)
        return click

    def _clicks_for(self, user_id: UUID) -> list[ClickEvent]:
        return [c for c in self.clicks if c.user_id == user_id]

    async def count_clicks_by_user(self, user_id: UUID) -> int:
        self._check()
        return len(self._clicks_for(user_id))

    async def count_distinct_ip_by_user(self, user_id: UUID) -> int:
        self._check()
        return len({c.ip for c in self._clicks_for(user_id)})

    async def clicks_per_day_by_user(self, user_id: UUID) -> list[tuple[str, int]]:
        self._check()
        counts: dict[str, int] = {}
        for c in self._clicks_for(user_id):
            day = c.created_at.astimezone(timezone.utc).isoformat()[:10]
            counts[day] = counts.get(day, 0) + 1
        return sorted(counts.items())

    async def list_users(self, offset: int = 0, limit: int = 25) -> list[User]:
        self._check()
        ordered = sorted(self.users, key=lambda u: u.created_at, reverse=True)
        return ordered[offset:offset + limit]

    async def count_users(self) -> int:
        self._check()
        return len(self.users)


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory SQLite database per test."""
    engine = build_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await drop_db(engine)
    await engine.dispose()


@pytest.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session that rolls back after each test."""
    factory = build_session_factory(engine)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def referral_config() -> ReferralConfig:
    return ReferralConfig(
        code_length=9,
        backend_base_url="http://localhost:8000",
        frontend_origin="https://app.example.com",
        frontend_signup_path="/signup",
    )


@pytest.fixture
def store(db: AsyncSession) -> SQLAlchemyReferralStore:
    return SQLAlchemyReferralStore(db)


@pytest.fixture
def memory_store() -> InMemoryReferralStore:
    return InMemoryReferralStore()


@pytest.fixture
def issuer(store: SQLAlchemyReferralStore, referral_config: ReferralConfig) -> CodeIssuer:
    return CodeIssuer(store, referral_config)


@pytest.fixture
def recorder(store: SQLAlchemyReferralStore, referral_config: ReferralConfig) -> ClickRecorder:
    return ClickRecorder(store, referral_config)


@pytest.fixture
def api_app(db: AsyncSession) -> Generator[FastAPI, None, None]:
    """Application instance with the database session overridden."""
    app = create_app()

    async def override_get_session():
        yield db

    app.dependency_overrides[get_session] = override_get_session
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(api_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client against the overridden application."""
    transport = ASGITransport(app=api_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
