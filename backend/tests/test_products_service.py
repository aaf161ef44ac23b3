import pytest

from fiscalpos.services import products_service
from fiscalpos.validation import ConflictError, ValidationError


def test_create_physical_product(db_session):
    product = products_service.create_product(
        sku=" W-1 ",
        name="Widget",
        unit_price="4.50",
        stock_quantity=12,
        attributes={"weight": "1.25", "height": 3},
    )

    assert product.sku == "W-1"
    assert product.kind == "PHYSICAL"
    assert product.tracks_inventory
    assert product.stock_quantity == 12
    assert product.attributes == {"weight": "1.25", "height": "3.00"}


def test_create_digital_product(db_session):
    product = products_service.create_product(
        sku="E-1",
        name="E-book",
        unit_price="9.99",
        kind="digital",
        attributes={"download_url": "https://example.com/e-1", "max_downloads": "3"},
    )

    assert product.kind == "DIGITAL"
    assert not product.tracks_inventory
    assert product.attributes == {"download_url": "https://example.com/e-1", "max_downloads": 3}


@pytest.mark.parametrize("kwargs", [
    {"kind": "DIGITAL", "stock_quantity": 1},
    {"kind": "SERVICE"},
    {"unit_price": "-1"},
    {"stock_quantity": -1},
    {"attributes": {"color": "red"}},
    {"kind": "DIGITAL", "attributes": {"weight": "1"}},
    {"attributes": ["weight"]},
])
def test_invalid_products(db_session, kwargs):
    params = {"sku": "X-1", "name": "Thing", "unit_price": "1.00"}
    params.update(kwargs)
    with pytest.raises(ValidationError):
        products_service.create_product(**params)


def test_duplicate_sku(db_session, make_product):
    make_product(sku="DUP")
    with pytest.raises(ConflictError):
        products_service.create_product(sku="DUP", name="Other", unit_price="1.00")
