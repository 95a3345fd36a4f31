"""Pytest configuration and shared fixtures for all tests."""

import os
from decimal import Decimal

# Minimal environment for Settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BASE_ACCOUNT_ADDRESS", "G" + "A" * 55)
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FILE", "")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ledger_bridge.config.settings import IngestorConfig, SettlementConfig
from ledger_bridge.models import Base
from tests.fakes.ledger import BASE_ACCOUNT, FakeLedgerClient, FakeSigner


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """SQLite database with all tables, one file per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger_bridge.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    """Session factory configured like production."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def base_account():
    """Exchange account."""
    return BASE_ACCOUNT


@pytest.fixture
def destination():
    """Existing destination account."""
    return "G" + "B" * 55


@pytest.fixture
def ledger(destination):
    """Fake ledger with the base account and one existing destination."""
    return FakeLedgerClient(accounts={BASE_ACCOUNT: 1000, destination: 5})


@pytest.fixture
def signer(ledger):
    """Fake signer bound to the fake ledger."""
    return FakeSigner(ledger)


@pytest.fixture
def ingestor_config():
    """Ingestor configuration with short retry delays."""
    return IngestorConfig(
        base_account_address=BASE_ACCOUNT,
        retry_initial_delay=0.01,
        retry_max_delay=0.05,
        block_retry_interval=0.01,
    )


@pytest.fixture
def settlement_config():
    """Settlement configuration."""
    return SettlementConfig(
        base_account_address=BASE_ACCOUNT,
        interval_seconds=0.05,
        minimum_account_funding=Decimal("1"),
    )
