"""Shared pytest fixtures for all tests."""

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from nestegg.core.config import Settings
from nestegg.models import Base, Transaction
from nestegg.services.categories import CategoryService


@pytest.fixture
def engine():
    """In-memory SQLite engine with the schema created.

    StaticPool keeps a single connection so every session (and the
    TestClient's worker thread) sees the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)()
    yield session
    session.close()


@pytest.fixture
def test_config():
    return Settings(database_url="sqlite://", descendant_strategy="auto", _env_file=None)


@pytest.fixture
def service(db, test_config):
    """CategoryService backed by the in-memory database."""
    return CategoryService(db, config=test_config)


@pytest.fixture(params=["recursive", "iterative"])
def strategy_service(request, db):
    """CategoryService forced onto each descendant strategy in turn."""
    config = Settings(database_url="sqlite://", descendant_strategy=request.param, _env_file=None)
    return CategoryService(db, config=config)


@pytest.fixture
def add_transaction(db):
    """Insert a ledger transaction directly, as the transaction service would."""

    def _add(category_id, amount, household_id="H1", occurred_on=None, note=None):
        row = Transaction(
            household_id=household_id,
            category_id=category_id,
            amount_yen=amount,
            occurred_on=occurred_on or date(2026, 1, 1),
            note=note,
        )
        db.add(row)
        db.commit()
        return row

    return _add


@pytest.fixture
def make_chain(service):
    """Create a single-branch chain of categories and return them root first."""

    def _make(length, household_id="H1", prefix="Level"):
        chain = []
        parent_id = None
        for i in range(1, length + 1):
            node = service.create(household_id, f"{prefix} {i}", parent_id=parent_id)
            chain.append(node)
            parent_id = node.id
        return chain

    return _make
