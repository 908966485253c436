from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import init_db
from ledger import LedgerStore


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def store(session):
    return LedgerStore(session)


@pytest.fixture
def categories(store):
    return {name: store.add_category(name) for name in ("Groceries", "Housing", "Transport")}


@pytest.fixture
def rent(store, categories):
    return store.add_recurring_template("Rent", "1200.00", "Monthly", date(2026, 1, 31), categories["Housing"].id)
