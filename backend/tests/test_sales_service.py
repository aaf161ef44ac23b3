"""
Sale aggregate: line editing, totals, emission, cancellation, deletion.
"""

from decimal import Decimal

import pytest

from fiscalpos.errors import (
    AlreadyCancelledError,
    CustomerNotFoundError,
    InsufficientStockError,
    ProductNotFoundError,
    SaleNotFoundError,
    StateError,
)
from fiscalpos.models import Sale, SaleLine, StockMovement
from fiscalpos.services import sales_service
from fiscalpos.validation import ValidationError
from conftest import stock_of


def _draft_with_lines(customer, *lines):
    sale = sales_service.create_sale(customer.id)
    for product, quantity in lines:
        sales_service.add_line(sale.id, product.id, quantity)
    return sale


class TestDraftEditing:
    def test_create_sale_starts_empty_draft(self, db_session, customer):
        sale = sales_service.create_sale(customer.id)
        assert sale.status == "DRAFT"
        assert sale.total == Decimal("0.00")
        assert sale.lines == []
        assert sale.created_at is not None

    def test_create_sale_requires_existing_customer(self, db_session):
        with pytest.raises(CustomerNotFoundError):
            sales_service.create_sale(424242)
        assert db_session.query(Sale).count() == 0

    def test_scenario_total(self, db_session, make_customer, make_product):
        make_customer(id=7)
        make_product(id=3, price="10.00", stock=5)
        make_product(id=5, price="25.00", stock=5)

        sale = sales_service.create_sale(7)
        sales_service.add_line(sale.id, 3, 2, "10.00")
        sales_service.add_line(sale.id, 5, 1, "25.00")

        sale = sales_service.get_sale(sale.id)
        assert sale.total == Decimal("45.00")
        assert [line.line_number for line in sale.lines] == [1, 2]
        assert [line.subtotal for line in sale.lines] == [Decimal("20.00"), Decimal("25.00")]
        assert sale.item_count == 3
        assert sale.line_count == 2

    def test_add_line_defaults_to_product_price(self, db_session, customer, make_product):
        product = make_product(price="3.35")
        sale = sales_service.create_sale(customer.id)

        line = sales_service.add_line(sale.id, product.id, 3)

        assert line.unit_price == Decimal("3.35")
        assert line.subtotal == Decimal("10.05")
        assert sales_service.get_sale(sale.id).total == Decimal("10.05")

    @pytest.mark.parametrize("quantity", [0, -2, "1.5", 2.0, None, True])
    def test_add_line_rejects_bad_quantity(self, db_session, customer, make_product, quantity):
        product = make_product()
        sale = sales_service.create_sale(customer.id)
        with pytest.raises(ValidationError):
            sales_service.add_line(sale.id, product.id, quantity)
        assert db_session.query(SaleLine).count() == 0

    @pytest.mark.parametrize("price", ["-0.01", "abc", "1.005"])
    def test_add_line_rejects_bad_price(self, db_session, customer, make_product, price):
        product = make_product()
        sale = sales_service.create_sale(customer.id)
        with pytest.raises(ValidationError):
            sales_service.add_line(sale.id, product.id, 1, price)

    def test_add_line_unknown_product(self, db_session, customer):
        sale = sales_service.create_sale(customer.id)
        with pytest.raises(ProductNotFoundError):
            sales_service.add_line(sale.id, 9999, 1)

    def test_add_line_unknown_sale(self, db_session, make_product):
        product = make_product()
        with pytest.raises(SaleNotFoundError):
            sales_service.add_line(9999, product.id, 1)

    def test_remove_line_keeps_numbers_and_recomputes(self, db_session, customer, make_product):
        a, b, c = make_product(price="1.00"), make_product(price="2.00"), make_product(price="4.00")
        sale = _draft_with_lines(customer, (a, 1), (b, 1), (c, 1))

        sale = sales_service.remove_line(sale.id, 2)

        assert [line.line_number for line in sale.lines] == [1, 3]
        assert sale.total == Decimal("5.00")

        sales_service.add_line(sale.id, b.id, 1)
        assert [line.line_number for line in sales_service.get_sale(sale.id).lines] == [1, 3, 4]

    def test_remove_missing_line(self, db_session, customer, make_product):
        sale = _draft_with_lines(customer, (make_product(), 1))
        with pytest.raises(ValidationError):
            sales_service.remove_line(sale.id, 5)

    def test_replace_lines_renumbers_from_one(self, db_session, customer, make_product):
        a, b = make_product(price="1.50"), make_product(price="2.25")
        sale = _draft_with_lines(customer, (a, 1), (b, 1), (a, 1))
        sales_service.remove_line(sale.id, 1)

        sale = sales_service.replace_lines(sale.id, [
            {"product_id": b.id, "quantity": 2},
            {"product_id": a.id, "quantity": 1, "unit_price": "1.00"},
        ])

        assert [(l.line_number, l.product_id, l.quantity) for l in sale.lines] == [(1, b.id, 2), (2, a.id, 1)]
        assert sale.total == Decimal("5.50")
        assert db_session.query(SaleLine).filter_by(sale_id=sale.id).count() == 2

    def test_replace_lines_with_empty_list(self, db_session, customer, make_product):
        sale = _draft_with_lines(customer, (make_product(), 2))
        sale = sales_service.replace_lines(sale.id, [])
        assert sale.lines == []
        assert sale.total == Decimal("0.00")

    def test_replace_lines_failure_keeps_old_lines(self, db_session, customer, make_product):
        product = make_product(price="2.00")
        sale = _draft_with_lines(customer, (product, 2))

        with pytest.raises(ProductNotFoundError):
            sales_service.replace_lines(sale.id, [
                {"product_id": product.id, "quantity": 1},
                {"product_id": 9999, "quantity": 1},
            ])

        sale = sales_service.get_sale(sale.id)
        assert [(l.line_number, l.quantity) for l in sale.lines] == [(1, 2)]
        assert sale.total == Decimal("4.00")


class TestEmission:
    def test_emit_reserves_stock(self, db_session, customer, make_product):
        a, b = make_product(stock=5), make_product(stock=1)
        sale = _draft_with_lines(customer, (a, 2), (b, 1))

        sale = sales_service.emit_sale(sale.id)

        assert sale.status == "EMITTED"
        assert sale.emitted_at is not None
        assert stock_of(a.id) == 3
        assert stock_of(b.id) == 0
        assert db_session.query(StockMovement).filter_by(sale_id=sale.id).count() == 2

    def test_emit_is_all_or_nothing(self, db_session, customer, make_product):
        p1 = make_product(stock=10)
        p2 = make_product(stock=3)
        sale = _draft_with_lines(customer, (p1, 5), (p2, 1000))

        with pytest.raises(InsufficientStockError) as exc:
            sales_service.emit_sale(sale.id)

        assert exc.value.product_id == p2.id
        assert exc.value.details == {"product_id": p2.id, "requested_quantity": 1000, "available_quantity": 3}
        assert stock_of(p1.id) == 10
        assert stock_of(p2.id) == 3
        assert sales_service.get_sale(sale.id).status == "DRAFT"
        assert db_session.query(StockMovement).count() == 0

    def test_emit_sums_repeated_product(self, db_session, customer, make_product):
        product = make_product(stock=3)
        sale = _draft_with_lines(customer, (product, 2), (product, 2))

        with pytest.raises(InsufficientStockError) as exc:
            sales_service.emit_sale(sale.id)
        assert exc.value.requested == 4
        assert stock_of(product.id) == 3

    def test_emit_digital_product_needs_no_stock(self, db_session, customer, make_product):
        ebook = make_product(kind="DIGITAL", price="9.99")
        sale = _draft_with_lines(customer, (ebook, 3))

        sale = sales_service.emit_sale(sale.id)

        assert sale.status == "EMITTED"
        assert sale.total == Decimal("29.97")

    def test_emit_requires_lines(self, db_session, customer):
        sale = sales_service.create_sale(customer.id)
        with pytest.raises(StateError) as exc:
            sales_service.emit_sale(sale.id)
        assert exc.value.current_state == "DRAFT"

    def test_emit_twice_is_rejected(self, db_session, customer, make_product):
        product = make_product(stock=5)
        sale = _draft_with_lines(customer, (product, 1))
        sales_service.emit_sale(sale.id)

        with pytest.raises(StateError) as exc:
            sales_service.emit_sale(sale.id)
        assert exc.value.current_state == "EMITTED"
        assert stock_of(product.id) == 4

    def test_emitted_sale_lines_are_frozen(self, db_session, customer, make_product):
        product = make_product(stock=5)
        sale = _draft_with_lines(customer, (product, 1))
        sales_service.emit_sale(sale.id)

        with pytest.raises(StateError):
            sales_service.add_line(sale.id, product.id, 1)
        with pytest.raises(StateError):
            sales_service.remove_line(sale.id, 1)
        with pytest.raises(StateError):
            sales_service.replace_lines(sale.id, [])
        with pytest.raises(StateError):
            sales_service.delete_sale(sale.id)


class TestCancellation:
    def test_cancel_restores_stock(self, db_session, customer, make_product):
        a, b = make_product(stock=5), make_product(stock=2)
        sale = _draft_with_lines(customer, (a, 3), (b, 2))
        sales_service.emit_sale(sale.id)

        sale = sales_service.cancel_sale(sale.id)

        assert sale.status == "CANCELLED"
        assert sale.cancelled_at is not None
        assert stock_of(a.id) == 5
        assert stock_of(b.id) == 2
        reasons = sorted(m.reason for m in db_session.query(StockMovement).filter_by(sale_id=sale.id))
        assert reasons == ["SALE_CANCEL", "SALE_CANCEL", "SALE_EMIT", "SALE_EMIT"]

    def test_cancel_draft_is_rejected(self, db_session, customer, make_product):
        sale = _draft_with_lines(customer, (make_product(), 1))
        with pytest.raises(StateError) as exc:
            sales_service.cancel_sale(sale.id)
        assert not isinstance(exc.value, AlreadyCancelledError)
        assert exc.value.current_state == "DRAFT"

    def test_cancel_twice_raises_already_cancelled(self, db_session, customer, make_product):
        product = make_product(stock=5)
        sale = _draft_with_lines(customer, (product, 2))
        sales_service.emit_sale(sale.id)
        sales_service.cancel_sale(sale.id)

        with pytest.raises(AlreadyCancelledError):
            sales_service.cancel_sale(sale.id)
        assert stock_of(product.id) == 5


class TestDeletion:
    def test_delete_draft_removes_lines(self, db_session, customer, make_product):
        sale = _draft_with_lines(customer, (make_product(), 1), (make_product(), 2))
        sales_service.delete_sale(sale.id)

        assert db_session.get(Sale, sale.id) is None
        assert db_session.query(SaleLine).count() == 0

    def test_delete_unknown_sale(self, db_session):
        with pytest.raises(SaleNotFoundError):
            sales_service.delete_sale(9999)


class TestQueries:
    def test_list_sales_filters_and_pages(self, db_session, make_customer, make_product):
        first = make_customer()
        second = make_customer(document_number="0926687856", first_name="Luis")
        product = make_product(stock=10)

        emitted = _draft_with_lines(first, (product, 1))
        sales_service.emit_sale(emitted.id)
        _draft_with_lines(first, (product, 1))
        _draft_with_lines(second, (product, 1))

        drafts, total = sales_service.list_sales(status="draft")
        assert total == 2
        assert all(s.status == "DRAFT" for s in drafts)

        mine, total = sales_service.list_sales(customer_id=first.id)
        assert total == 2

        page, total = sales_service.list_sales(limit=1, offset=0)
        assert total == 3
        assert len(page) == 1

        page, _ = sales_service.list_sales(limit=0)
        assert len(page) == 1

    def test_list_sales_rejects_unknown_status(self, db_session):
        with pytest.raises(ValidationError):
            sales_service.list_sales(status="POSTED")
