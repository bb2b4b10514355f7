"""
Test configuration and shared fixtures for the clinic billing test suite.

Each test gets its own SQLite database file by default, so tests that use
several sessions or threads see real commits. Set TEST_DATABASE_URL to run the
suite against PostgreSQL instead (row locks are only exercised there).
"""

import os

# Must be set before core.database builds the application engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from decimal import Decimal
from typing import Generator, Optional

from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from auth.capabilities import Actor
from core.database import Base, build_engine

# Import all models to ensure they're registered with SQLAlchemy before any relationships are resolved
from models.patient import Patient
from models.service_item import ServiceItem
from models.invoice import Invoice
from models.invoice_line_item import InvoiceLineItem
from models.payment import Payment
from models.billing_log import BillingLog


TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """
    Create a database engine with a fresh schema for one test.

    Uses NullPool so every session gets its own connection, which is what the
    concurrency tests rely on.
    """
    url = TEST_DATABASE_URL or f"sqlite:///{tmp_path / 'billing_test.db'}"
    engine = build_engine(url, poolclass=NullPool)

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    """Session factory bound to the test engine (same settings as SessionLocal)."""
    return sessionmaker(
        bind=db_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Provide a database session for a test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def cashier() -> Actor:
    """Actor allowed to create invoices and take payments."""
    return Actor.from_roles(101, ["cashier"])


@pytest.fixture
def practitioner() -> Actor:
    """Actor allowed to view billing only."""
    return Actor.from_roles(202, ["practitioner"])


# Helper functions for seeding ledger reference data
def create_patient(db_session: Session, full_name: str = "Test Patient", is_deleted: bool = False) -> Patient:
    """Create and commit a patient."""
    patient = Patient(full_name=full_name, phone_number="0912345678", is_deleted=is_deleted)
    db_session.add(patient)
    db_session.commit()
    return patient


def create_service_item(
    db_session: Session,
    name: str,
    unit_price: str,
    is_active: bool = True,
    category: Optional[str] = None,
    unit: Optional[str] = None,
) -> ServiceItem:
    """Create and commit a catalog entry."""
    item = ServiceItem(
        name=name,
        unit_price=Decimal(unit_price),
        is_active=is_active,
        category=category,
        unit=unit,
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture
def patient(db_session) -> Patient:
    return create_patient(db_session, "Maria Santos")


@pytest.fixture
def consultation(db_session) -> ServiceItem:
    """Active 500.00 catalog item."""
    return create_service_item(db_session, "General Consultation", "500.00", category="Consultation", unit="visit")
