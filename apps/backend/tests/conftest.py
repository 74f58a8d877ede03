"""Test fixtures and configuration."""

import logging
import os
import sys
from datetime import UTC, datetime
from decimal import Decimal

# Settings are read at import time; point them at throwaway resources first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "testing"
os.environ.setdefault("S3_ENDPOINT", "http://127.0.0.1:9000")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
import structlog  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from shop_ledger import database  # noqa: E402
from shop_ledger.database import Base  # noqa: E402
from shop_ledger.models import Setting, Shop, User, UserRole  # noqa: E402
from shop_ledger.security import create_access_token  # noqa: E402


# --- Structlog Configuration for Tests ---
@pytest.fixture(autouse=True, scope="session")
def configure_structlog_for_tests():
    """Configure structlog for proper capsys capture in tests."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(),
        foreign_pre_chain=processors[:-1],
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    yield

    structlog.reset_defaults()


# --- Database ---


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """File-backed SQLite engine, one database per test.

    A file (rather than ``:memory:``) lets the API's own sessions and the
    test's session see the same committed rows over separate connections.
    """
    from shop_ledger import models  # noqa: F401

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(autouse=True)
async def patch_database_connection(db_engine):
    """Route ``get_db`` to the per-test engine."""
    maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    previous = database.set_test_session_maker(maker)
    yield
    database.set_test_session_maker(previous)


@pytest_asyncio.fixture
async def db(db_engine):
    async with AsyncSession(db_engine, expire_on_commit=False) as session:
        yield session


# --- Tenants and users ---


@pytest_asyncio.fixture
async def shop(db):
    shop = Shop(name="Main Street", location="Lahore")
    db.add(shop)
    await db.flush()
    db.add(Setting(shop_id=shop.id, site_name="Main Street Traders", opening_balance=Decimal("1000.00")))
    await db.commit()
    return shop


@pytest_asyncio.fixture
async def shop_user(db, shop):
    user = User(email="owner@example.com", hashed_password="hashed", role=UserRole.ADMIN, shop_id=shop.id)
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def superadmin(db):
    user = User(email="root@example.com", hashed_password="hashed", role=UserRole.SUPERADMIN)
    db.add(user)
    await db.commit()
    return user


def _client_for(user: User) -> AsyncClient:
    from shop_ledger.main import app

    token = create_access_token(data={"sub": str(user.id)})
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {token}"},
    )


@pytest_asyncio.fixture
async def client(shop_user):
    """Client authenticated as the owner of ``shop``."""
    async with _client_for(shop_user) as client_instance:
        yield client_instance


@pytest_asyncio.fixture
async def admin_client(superadmin):
    """Client authenticated as a superadmin."""
    async with _client_for(superadmin) as client_instance:
        yield client_instance


@pytest.fixture
def day():
    """Build a UTC instant on a fixed test month."""

    def _day(number: int, hour: int = 12) -> datetime:
        return datetime(2024, 3, number, hour, 0, tzinfo=UTC)

    return _day
