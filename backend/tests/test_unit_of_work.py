"""
Unit-of-work helpers on the application's scoped session.
"""

import pytest

from fiscalpos.extensions import db
from fiscalpos.models import Product
from fiscalpos.services.concurrency import begin_write, run_atomically
from fiscalpos.services import sales_service
from conftest import stock_of


def test_begin_write_accepts_the_scoped_session(db_session):
    assert not db.session().in_transaction()

    begin_write(db.session)

    assert db.session().in_transaction()
    db.session.rollback()


def test_begin_write_leaves_an_open_transaction_alone(db_session, make_product):
    product = make_product(stock=3)
    db.session.get(Product, product.id)
    assert db.session().in_transaction()

    begin_write()

    assert db.session().in_transaction()
    db.session.rollback()


def test_run_atomically_commits(db_session, make_product):
    product = make_product(stock=3)

    def _op():
        db.session.get(Product, product.id).stock_quantity = 7
        return "done"

    assert run_atomically(_op) == "done"
    assert stock_of(product.id) == 7


def test_run_atomically_rolls_back_and_reraises(db_session, make_product):
    product = make_product(stock=3)

    def _op():
        db.session.get(Product, product.id).stock_quantity = 0
        db.session.flush()
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        run_atomically(_op)
    assert stock_of(product.id) == 3


def test_create_sale_writes_through_scoped_session(db_session, customer):
    sale = sales_service.create_sale(customer.id)
    assert sale.id is not None
    assert sale.status == "DRAFT"
