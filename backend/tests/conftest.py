"""
Pytest fixtures for shopkeeper backend tests.

Provides the test application, a wiped database per test, and small
factories for categories, clients and products.
"""

import itertools
from decimal import Decimal

import pytest

from shopkeeper import create_app
from shopkeeper.extensions import db
from shopkeeper.models import Category, Client, Product
from shopkeeper.services.cache_service import get_cache

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'TRANSACTION_RETRY_BACKOFF': 0,
    'LOG_LEVEL': 'DEBUG',
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

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
    """Create fresh database (and empty cache) for each test."""
    with app.app_context():
        # Clear all data but keep schema
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        get_cache().clear()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_category(db_session):
    counter = itertools.count(1)

    def _make(name=None, color="#123456"):
        category = Category(name=name or f"Category {next(counter)}", color=color, description="")
        db_session.add(category)
        db_session.commit()
        return category

    return _make


@pytest.fixture(scope='function')
def make_client(db_session):
    counter = itertools.count(1)

    def _make(name=None, email=None, **extra):
        n = next(counter)
        c = Client(
            name=name or f"Client {n}",
            email=email or f"client{n}@example.com",
            **extra
        )
        db_session.add(c)
        db_session.commit()
        return c

    return _make


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make(name="Widget", stock=10, price="5.00", cost="3.00", category=None):
        product = Product(
            name=name,
            stock=stock,
            price=Decimal(price),
            cost=Decimal(cost),
            category_id=category.id if category is not None else None,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def customer(make_client):
    """Client C of the sale scenarios."""
    return make_client(name="Ada Buyer", email="ada@example.com")


@pytest.fixture(scope='function')
def product(make_product):
    """Product P: stock 10, price 5.00."""
    return make_product()


def sale_payload(client_id, items, payments, status=None):
    """POST /api/sales body from (product_id, quantity) and (type, amount) pairs."""
    payload = {
        'clientId': client_id,
        'items': [{'productId': pid, 'quantity': qty} for pid, qty in items],
        'paymentMethods': [{'type': ptype, 'amount': amount} for ptype, amount in payments],
    }
    if status is not None:
        payload['status'] = status
    return payload
