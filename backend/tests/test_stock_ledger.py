"""
Stock ledger: conditional reservations, unconditional release, movement journal.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from fiscalpos.errors import ProductNotFoundError
from fiscalpos.models import Product, StockMovement
from fiscalpos.services import stock_ledger
from fiscalpos.validation import ValidationError
from conftest import stock_of


def test_reserve_decrements_and_journals(db_session, make_product):
    product = make_product(stock=5)

    assert stock_ledger.reserve(db_session, product.id, 3) is True
    db_session.commit()

    assert stock_of(product.id) == 2
    movement = db_session.query(StockMovement).filter_by(product_id=product.id).one()
    assert movement.quantity_delta == -3
    assert movement.reason == "SALE_EMIT"


def test_reserve_exact_quantity_reaches_zero(db_session, make_product):
    product = make_product(stock=4)
    assert stock_ledger.reserve(db_session, product.id, 4) is True
    db_session.commit()
    assert stock_of(product.id) == 0


def test_reserve_more_than_available_fails_without_effect(db_session, make_product):
    product = make_product(stock=2)

    assert stock_ledger.reserve(db_session, product.id, 3) is False
    db_session.commit()

    assert stock_of(product.id) == 2
    assert db_session.query(StockMovement).count() == 0


def test_identity_map_sees_new_quantity(db_session, make_product):
    product = make_product(stock=9)
    stock_ledger.reserve(db_session, product.id, 4)
    assert db_session.get(Product, product.id).stock_quantity == 5


def test_release_adds_back(db_session, make_product):
    product = make_product(stock=1)

    stock_ledger.release(db_session, product.id, 4, sale_id=None)
    db_session.commit()

    assert stock_of(product.id) == 5
    movement = db_session.query(StockMovement).one()
    assert movement.quantity_delta == 4
    assert movement.reason == "SALE_CANCEL"


def test_reserve_release_sequence_never_negative(db_session, make_product):
    product = make_product(stock=3)
    outcomes = []
    for quantity in (2, 2, 1, 1):
        outcomes.append(stock_ledger.reserve(db_session, product.id, quantity))
        assert stock_of(product.id) >= 0
    stock_ledger.release(db_session, product.id, 2)
    outcomes.append(stock_ledger.reserve(db_session, product.id, 2))
    db_session.commit()

    assert outcomes == [True, False, True, False, True]
    assert stock_of(product.id) == 0

    journal = sum(m.quantity_delta for m in db_session.query(StockMovement).all())
    assert 3 + journal == stock_of(product.id)


def test_digital_products_are_not_tracked(db_session, make_product):
    product = make_product(kind="DIGITAL", attributes={"download_url": "https://example.com/f"})

    assert stock_ledger.reserve(db_session, product.id, 1000) is True
    stock_ledger.release(db_session, product.id, 5)
    db_session.commit()

    assert stock_of(product.id) == 0
    assert stock_ledger.available(db_session, product.id) is None
    assert db_session.query(StockMovement).count() == 0


def test_unknown_product(db_session):
    with pytest.raises(ProductNotFoundError) as exc:
        stock_ledger.reserve(db_session, 9999, 1)
    assert exc.value.details == {"product_id": 9999}


@pytest.mark.parametrize("quantity", [0, -1, True, 1.5])
def test_quantity_must_be_positive_integer(db_session, make_product, quantity):
    product = make_product(stock=5)
    with pytest.raises(ValidationError):
        stock_ledger.reserve(db_session, product.id, quantity)


def test_storage_rejects_negative_quantity(db_session, make_product):
    product = make_product(stock=1)
    product.stock_quantity = -1
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_recent_movements_newest_first(db_session, make_product):
    product = make_product(stock=10)
    stock_ledger.reserve(db_session, product.id, 1)
    stock_ledger.reserve(db_session, product.id, 2)
    db_session.commit()

    movements = stock_ledger.recent_movements(db_session, product.id, limit=5)
    assert [m.quantity_delta for m in movements] == [-2, -1]
