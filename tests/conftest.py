"""Shared test fixtures and configuration."""

import os
from datetime import datetime
from typing import Optional

import pytest

# Set up test environment variables before importing modules
os.environ.setdefault("APP_KEY", "test_app_key_12345")
os.environ.setdefault("SEPAY_API_KEY", "sepay_test_key")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")

from payfastacy.config import Settings
from payfastacy.database import (
    Base,
    Payment,
    create_async_engine,
    get_async_session_factory,
)


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at an in-memory database."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        app_key="test_app_key_12345",
        sepay_api_key="sepay_test_key",
    )


# Database fixtures for integration tests
@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite database for testing."""
    engine = create_async_engine(
        database_url="sqlite+aiosqlite:///:memory:",
        echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Create a database session for testing."""
    session_factory = get_async_session_factory(db_engine)
    async with session_factory() as session:
        yield session


@pytest.fixture
def add_payment(db_session):
    """Insert a payment with explicit values and return it."""

    async def _add(
        amount: int,
        ref: str,
        content: str,
        status: bool = False,
        txn_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Payment:
        payment = Payment(
            amount=amount,
            ref=ref,
            content=content,
            status=status,
            txn_id=txn_id,
            created_at=created_at or datetime.utcnow(),
        )
        db_session.add(payment)
        await db_session.commit()
        return payment

    return _add
