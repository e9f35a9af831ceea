"""
Pytest fixtures for fieldledger backend tests.

Provides the test app on in-memory SQLite, a per-test table wipe, the test
client, and small factories for products and employees.
"""

import itertools

import pytest
from fieldledger import create_app
from fieldledger.extensions import db
from fieldledger.services import custody_service, employees_service, products_service


_phone_counter = itertools.count(1)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOCK_RETRY_BACKOFF': 0,
    })

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
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: create a product with opening stock through the catalog service."""
    def _make(title="Water Filter", stock=0, base_price_cents=1500, lowest_selling_price_cents=1000):
        return products_service.create_product({
            "title": title,
            "base_price_cents": base_price_cents,
            "lowest_selling_price_cents": lowest_selling_price_cents,
            "stock_quantity": stock,
        })
    return _make


@pytest.fixture(scope='function')
def make_employee(db_session):
    """Factory: create an employee with empty custody and a unique phone number."""
    def _make(full_name="Asha Rao"):
        phone = f"98{next(_phone_counter):08d}"
        return employees_service.create_employee({"full_name": full_name, "phone_number": phone})
    return _make


@pytest.fixture(scope='function')
def product(make_product):
    return make_product(title="Product P", stock=5)


@pytest.fixture(scope='function')
def employee(make_employee):
    return make_employee()


def give_custody(employee_id: int, product_id: int, quantity: int) -> None:
    """Helper: assign warehouse stock to an employee through the saga."""
    from fieldledger.services.assignment_service import assign_product
    assign_product(employee_id, product_id, quantity)


def holdings_of(employee_id: int) -> dict:
    """Helper: current holdings of an employee, read fresh."""
    db.session.expire_all()
    return custody_service.load_employee(employee_id).holdings_dict()


def customer(name="Ravi Kumar", phone="9876543210") -> dict:
    return {"name": name, "phone": phone}
