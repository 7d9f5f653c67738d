# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Test environment variables (set before any app import)
- Database fixtures (in-memory SQLite)
- API client with the database dependency overridden
- Sample data factories
"""

import os

# Set environment variables BEFORE importing app modules, since
# app.config builds its settings at import time
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("PRICE_REFRESH_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import datetime
from decimal import Decimal
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import (
    Base,
    Instrument,
    PriceObservation,
    RewardEntry,
    User,
)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    """Factory for components that open their own sessions (refresh job)."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Iterator[Session]:
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture(scope="function")
def client(db: Session) -> Iterator[TestClient]:
    """
    TestClient whose requests all use the test session.

    The lifespan still runs; the refresh job is disabled via
    PRICE_REFRESH_ENABLED=false.
    """
    from app.database import get_db
    from app.main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================

def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    """Naive UTC timestamp, the storage convention of every DateTime column."""
    return datetime(year, month, day, hour, minute, second)


def create_user(
        db: Session,
        name: str = "Asha Verma",
        email: str = "asha@example.com",
) -> User:
    """Create a test user."""
    user = User(name=name, email=email)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_instrument(db: Session, symbol: str = "RELIANCE") -> Instrument:
    """Create a test instrument."""
    instrument = Instrument(symbol=symbol)
    db.add(instrument)
    db.commit()
    db.refresh(instrument)
    return instrument


def create_reward(
        db: Session,
        user: User,
        instrument: Instrument,
        shares: Decimal | str = "1",
        rewarded_at: datetime | None = None,
) -> RewardEntry:
    """Insert a reward entry directly, bypassing validation."""
    entry = RewardEntry(
        user_id=user.id,
        instrument_id=instrument.id,
        shares=Decimal(str(shares)),
    )
    if rewarded_at is not None:
        entry.rewarded_at = rewarded_at
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def create_price(
        db: Session,
        instrument: Instrument,
        price: Decimal | str,
        recorded_at: datetime,
) -> PriceObservation:
    """Insert a price observation directly."""
    observation = PriceObservation(
        instrument_id=instrument.id,
        price=Decimal(str(price)),
        recorded_at=recorded_at,
    )
    db.add(observation)
    db.commit()
    db.refresh(observation)
    return observation


# =============================================================================
# SAMPLE FIXTURES
# =============================================================================

@pytest.fixture
def sample_user(db: Session) -> User:
    return create_user(db)


@pytest.fixture
def sample_instrument(db: Session) -> Instrument:
    return create_instrument(db, "RELIANCE")
