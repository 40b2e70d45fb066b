"""
Shared fixtures: an in-memory SQLite database wired into the app.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import settleup.models  # noqa: F401
from settleup.db.base import Base
from settleup.db.session import get_db
from settleup.main import app
from settleup.models.event import Event, Participant
from settleup.models.expense import Expense, ExpenseShare, SplitType
from settleup.models.user import User


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """TestClient using the test database."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_event(db):
    """Create an event with named participants; returns (event, {name: participant})."""
    def _make(names=("Alice", "Bob"), currency="EUR", name="Weekend trip"):
        event = Event(name=name, currency=currency)
        event.participants = [Participant(name=n) for n in names]
        db.add(event)
        db.commit()
        db.refresh(event)
        return event, {p.name: p for p in event.participants}
    return _make


@pytest.fixture
def make_user(db):
    def _make(username, email=None):
        user = User(username=username, email=email)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def add_expense(db):
    """Insert an expense row with explicit shares: {participant: amount}."""
    def _add(event, payer, amount, shares, deselected=(), paid_by=None, currency=None):
        expense = Expense(
            event_id=event.id,
            payer_id=payer.id if payer is not None else None,
            paid_by=paid_by,
            amount=Decimal(amount),
            currency=currency or event.currency,
            split_type=SplitType.CUSTOM,
        )
        expense.shares = [
            ExpenseShare(participant_id=p.id, share_amount=Decimal(a), is_obligated=True)
            for p, a in shares.items()
        ] + [
            ExpenseShare(participant_id=p.id, share_amount=Decimal("0"), is_obligated=False)
            for p in deselected
        ]
        db.add(expense)
        db.commit()
        db.refresh(expense)
        return expense
    return _add
