"""
Pytest fixtures for the back-office ledger tests.

Provides an in-memory database, a test client, and committed reference data
created through the services.
"""

import pytest

from backoffice import create_app
from backoffice.config import TestingConfig
from backoffice.extensions import db
from backoffice.services import (
    business_unit_service,
    counterparty_service,
    inventory_service,
    treasury_service,
)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema. Core deletes skip the append-only listeners.
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def retail(db_session):
    """Retail business unit."""
    return business_unit_service.create_business_unit("Hardware Store", "RETAIL")


@pytest.fixture(scope='function')
def second_retail(db_session):
    """Second unit of the same business type as ``retail``."""
    return business_unit_service.create_business_unit("Hardware Store North", "RETAIL")


@pytest.fixture(scope='function')
def scrapyard(db_session):
    return business_unit_service.create_business_unit("Scrapyard", "SCRAPYARD")


@pytest.fixture(scope='function')
def paint_shop(db_session):
    return business_unit_service.create_business_unit("Paint Shop", "PAINT")


@pytest.fixture(scope='function')
def panel_shop(db_session):
    return business_unit_service.create_business_unit("Panel Beating", "PANELBEATING")


@pytest.fixture(scope='function')
def safe_a(db_session):
    """Till with 1000.00."""
    return treasury_service.create_safe("Safe A", opening_balance="1000.00")


@pytest.fixture(scope='function')
def safe_b(db_session):
    """Bank account with 200.00."""
    return treasury_service.create_safe("Safe B", opening_balance="200.00", is_physical_cash=False)


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(unit, name, qty=..., cost=..., price=...)."""
    def _make(unit, name, qty=0, cost=0, price="10.00", unit_type="EACH"):
        return inventory_service.create_product(
            business_unit_id=unit.id,
            name=name,
            selling_price=price,
            cost_price=cost,
            quantity_on_hand=qty,
            unit_type=unit_type,
        )
    return _make


@pytest.fixture(scope='function')
def customer(retail):
    return counterparty_service.create_customer(business_unit_id=retail.id, name="Thabo Builders")


@pytest.fixture(scope='function')
def supplier(retail):
    return counterparty_service.create_supplier(
        business_unit_id=retail.id, name="Cement Wholesale", contact_person="Accounts"
    )
