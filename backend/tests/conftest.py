"""
Pytest fixtures for fiscalpos backend tests.

Provides test database setup, product/customer factories, and test client.
"""

from decimal import Decimal

import pytest
from fiscalpos import create_app
from fiscalpos.extensions import db
from fiscalpos.models import Customer, Product


# Identity documents with correct check digits (worked out by hand)
VALID_NATURAL_ID = "1710034065"
OTHER_NATURAL_ID = "0926687856"
VALID_NATURAL_TAX_ID = "1710034065001"
VALID_PRIVATE_TAX_ID = "1790012344001"
VALID_PUBLIC_TAX_ID = "1760001550001"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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
    """Factory for committed products."""
    counter = {"n": 0}

    def _make(price="10.00", stock=10, kind="PHYSICAL", id=None, sku=None, attributes=None):
        counter["n"] += 1
        product = Product(
            id=id,
            sku=sku or f"SKU-{counter['n']:03d}",
            name=f"Product {counter['n']}",
            kind=kind,
            attributes=attributes,
            unit_price=Decimal(price),
            stock_quantity=stock if kind == "PHYSICAL" else 0,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def make_customer(db_session):
    """Factory for committed NATURAL customers."""
    def _make(document_number=VALID_NATURAL_ID, id=None, first_name="Ana", last_name="Torres"):
        customer = Customer(
            id=id,
            kind="NATURAL",
            document_number=document_number,
            first_name=first_name,
            last_name=last_name,
        )
        db_session.add(customer)
        db_session.commit()
        return customer

    return _make


@pytest.fixture(scope='function')
def customer(make_customer):
    return make_customer()


def stock_of(product_id: int) -> int:
    """Quantity straight from the database, bypassing the identity map."""
    return db.session.query(Product.stock_quantity).filter(Product.id == product_id).scalar()
