"""
Sales service - document-first sale processing.

A sale is built as a DRAFT, its lines edited freely, then emitted. Emission
reserves stock for every physical line inside one transaction: the first
shortfall raises InsufficientStockError and the rollback returns every
reservation already taken, so the sale stays DRAFT and no product moves.
Cancelling an emitted sale releases the same quantities.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..errors import CustomerNotFoundError, InsufficientStockError, ProductNotFoundError, SaleNotFoundError, StateError
from ..extensions import db
from ..models import Product, Sale, SaleLine
from ..time_utils import utcnow
from ..validation import ValidationError, quantize_money, require_int, require_money
from . import stock_ledger
from .concurrency import lock_for_update, run_atomically
from .customer_service import customer_exists
from .lifecycle_service import SALE_STATUSES, ensure_status, ensure_transition

MAX_PAGE_SIZE = 200


def _load_sale(sale_id: int, *, lock: bool = True) -> Sale:
    query = db.session.query(Sale).filter_by(id=sale_id)
    if lock:
        query = lock_for_update(query)
    sale = query.first()
    if sale is None:
        raise SaleNotFoundError(sale_id)
    return sale


def _load_draft(sale_id: int, action: str) -> Sale:
    sale = _load_sale(sale_id)
    ensure_status("Sale", sale.id, sale.status, "DRAFT", action)
    return sale


def _parse_line(raw: dict) -> tuple[int, int, Decimal | None]:
    if not isinstance(raw, dict):
        raise ValidationError("each line must be an object")
    product_id = require_int(raw.get("product_id"), "product_id", minimum=1)
    quantity = require_int(raw.get("quantity"), "quantity", minimum=1)
    unit_price = raw.get("unit_price")
    price = require_money(unit_price, "unit_price") if unit_price is not None else None
    return product_id, quantity, price


def _build_line(sale: Sale, line_number: int, product_id: int, quantity: int, unit_price: Decimal | None) -> SaleLine:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    price = quantize_money(Decimal(unit_price if unit_price is not None else product.unit_price))
    return SaleLine(
        sale=sale,
        line_number=line_number,
        product_id=product.id,
        quantity=quantity,
        unit_price=price,
        subtotal=quantize_money(price * quantity),
    )


def _quantities_by_product(lines: list[SaleLine]) -> "OrderedDict[int, int]":
    totals: OrderedDict[int, int] = OrderedDict()
    for line in lines:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
    return totals


def create_sale(customer_id) -> Sale:
    """Create a new empty DRAFT sale for an existing customer."""
    customer_id = require_int(customer_id, "customer_id", minimum=1)

    def _op() -> Sale:
        if not customer_exists(customer_id):
            raise CustomerNotFoundError(customer_id)
        sale = Sale(customer_id=customer_id, status="DRAFT", total=Decimal("0.00"), created_at=utcnow())
        db.session.add(sale)
        db.session.flush()
        return sale

    return run_atomically(_op)


def add_line(sale_id: int, product_id, quantity, unit_price=None) -> SaleLine:
    """
    Append a line to a DRAFT sale.

    unit_price defaults to the product's current price. The sale total is
    recomputed in the same transaction.
    """
    product_id, quantity, price = _parse_line(
        {"product_id": product_id, "quantity": quantity, "unit_price": unit_price}
    )

    def _op() -> SaleLine:
        sale = _load_draft(sale_id, "add lines")
        line = _build_line(sale, sale.next_line_number(), product_id, quantity, price)
        db.session.add(line)
        sale.recompute_total()
        db.session.flush()
        return line

    return run_atomically(_op)


def remove_line(sale_id: int, line_number) -> Sale:
    """Drop one line from a DRAFT sale. Remaining lines keep their numbers."""
    line_number = require_int(line_number, "line_number", minimum=1)

    def _op() -> Sale:
        sale = _load_draft(sale_id, "remove lines")
        line = next((candidate for candidate in sale.lines if candidate.line_number == line_number), None)
        if line is None:
            raise ValidationError(f"Sale {sale.id} has no line {line_number}")
        sale.lines.remove(line)
        sale.recompute_total()
        db.session.flush()
        return sale

    return run_atomically(_op)


def replace_lines(sale_id: int, lines: list) -> Sale:
    """
    Replace every line of a DRAFT sale.

    New lines are numbered 1..n in the order given. An empty list leaves the
    sale with no lines.
    """
    if not isinstance(lines, list):
        raise ValidationError("lines must be a list")
    parsed = [_parse_line(raw) for raw in lines]

    def _op() -> Sale:
        sale = _load_draft(sale_id, "replace lines")
        sale.lines.clear()
        # old rows must be gone before new ones reuse their line numbers
        db.session.flush()
        for number, (product_id, quantity, price) in enumerate(parsed, start=1):
            db.session.add(_build_line(sale, number, product_id, quantity, price))
        sale.recompute_total()
        db.session.flush()
        return sale

    return run_atomically(_op)


def emit_sale(sale_id: int) -> Sale:
    """
    DRAFT -> EMITTED, reserving stock for every line.

    All-or-nothing: any product without enough stock raises
    InsufficientStockError naming it, and nothing is persisted.
    """
    def _op() -> Sale:
        sale = _load_sale(sale_id)
        ensure_transition("Sale", sale.id, sale.status, "EMITTED")
        if not sale.lines:
            raise StateError(
                f"Cannot emit sale {sale.id} with no lines",
                current_state=sale.status,
                details={"sale_id": sale.id},
            )

        for product_id, quantity in _quantities_by_product(sale.lines).items():
            if not stock_ledger.reserve(db.session, product_id, quantity, sale_id=sale.id):
                raise InsufficientStockError(
                    product_id, quantity, stock_ledger.available(db.session, product_id) or 0
                )

        sale.status = "EMITTED"
        sale.emitted_at = utcnow()
        db.session.flush()
        return sale

    sale = run_atomically(_op)
    current_app.logger.info("Sale %s emitted, total %s", sale.id, sale.total)
    return sale


def cancel_sale(sale_id: int) -> Sale:
    """
    EMITTED -> CANCELLED, returning stock for every line.

    Drafts are deleted rather than cancelled; a second cancellation raises
    AlreadyCancelledError.
    """
    def _op() -> Sale:
        sale = _load_sale(sale_id)
        ensure_transition("Sale", sale.id, sale.status, "CANCELLED")

        for product_id, quantity in _quantities_by_product(sale.lines).items():
            stock_ledger.release(db.session, product_id, quantity, sale_id=sale.id)

        sale.status = "CANCELLED"
        sale.cancelled_at = utcnow()
        db.session.flush()
        return sale

    sale = run_atomically(_op)
    current_app.logger.info("Sale %s cancelled, stock returned", sale.id)
    return sale


def delete_sale(sale_id: int) -> None:
    """Remove a DRAFT sale and its lines. Emitted or cancelled sales are kept."""
    def _op() -> None:
        sale = _load_draft(sale_id, "delete")
        db.session.delete(sale)
        db.session.flush()

    run_atomically(_op)


def get_sale(sale_id: int) -> Sale:
    return _load_sale(sale_id, lock=False)


def list_sales(
    *,
    status: str | None = None,
    customer_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Sale], int]:
    """
    List sales newest first with optional filters.

    Returns (page, total matching). limit is clamped to [1, 200].
    """
    query = db.session.query(Sale)
    if status:
        status = status.upper()
        if status not in SALE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(SALE_STATUSES))}")
        query = query.filter(Sale.status == status)
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)
    if date_from is not None:
        query = query.filter(Sale.created_at >= date_from)
    if date_to is not None:
        query = query.filter(Sale.created_at <= date_to)

    total = query.count()

    limit = max(1, min(limit, MAX_PAGE_SIZE))
    offset = max(0, offset)
    sales = query.order_by(Sale.created_at.desc(), Sale.id.desc()).offset(offset).limit(limit).all()
    return sales, total
