"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from card_ledger.api.main import create_app
from card_ledger.api.dependencies import get_now, get_today
from card_ledger.infrastructure.database.models import Base, Card
from card_ledger.infrastructure.database.session import build_engine, get_db
from card_ledger.domain.models import CardDetails
from card_ledger.services.cards import CardService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

# Pinned clock: 2025-11-03 falls in the November invoice of a card closing on day 5
TODAY = date(2025, 11, 3)
NOW = datetime(2025, 11, 3, 12, 0)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def other_db(db: Session) -> Generator[Session, None, None]:
    """Second session on the same database, standing in for a concurrent request"""
    other = TestingSessionLocal()
    try:
        yield other
    finally:
        other.close()


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database and a pinned clock"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    app.dependency_overrides[get_now] = lambda: NOW
    return TestClient(app)


@pytest.fixture
def card(db: Session) -> Card:
    """Card closing on day 5, due on day 15, limit 5000.00"""
    card = CardService(db).create_card(
        CardDetails(
            name="Nubank Gold",
            issuing_bank="Nubank",
            closing_day=5,
            due_day=15,
            limit=Decimal("5000.00"),
        )
    )
    db.commit()
    return card
