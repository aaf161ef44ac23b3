# Overview: Stock ledger; the only writer of products.stock_quantity.

"""
Atomic stock reservation and release.

Every write is a single conditional UPDATE executed in the caller's
transaction:

    UPDATE products SET stock_quantity = stock_quantity - :n
    WHERE id = :id AND stock_quantity >= :n

A reservation that matches zero rows failed; nothing was changed and the
caller gets False back immediately (no waiting, no retry). Release adds back
unconditionally. The session is passed in explicitly so the sale service can
run several reservations inside one unit of work and roll all of them back
together.

Only PHYSICAL products are tracked. DIGITAL products always succeed and leave
no journal row.
"""

from __future__ import annotations

from sqlalchemy import update

from ..errors import ProductNotFoundError
from ..models import Product, StockMovement
from ..time_utils import utcnow
from ..validation import ValidationError


def _load_product(session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


def _check_quantity(quantity) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer")


def reserve(session, product_id: int, quantity: int, *, sale_id: int | None = None, reason: str = "SALE_EMIT") -> bool:
    """
    Take `quantity` units of a product out of stock.

    Returns True on success, False when the product does not hold enough
    stock. Raises ProductNotFoundError for an unknown product.
    """
    _check_quantity(quantity)
    product = _load_product(session, product_id)
    if not product.tracks_inventory:
        return True

    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock_quantity >= quantity)
        .values(stock_quantity=Product.stock_quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if not result.rowcount:
        return False

    session.expire(product, ["stock_quantity"])
    session.add(
        StockMovement(
            product_id=product_id,
            sale_id=sale_id,
            quantity_delta=-quantity,
            reason=reason,
            occurred_at=utcnow(),
        )
    )
    return True


def release(session, product_id: int, quantity: int, *, sale_id: int | None = None, reason: str = "SALE_CANCEL") -> None:
    """Return `quantity` units to stock. Cannot fail on business grounds."""
    _check_quantity(quantity)
    product = _load_product(session, product_id)
    if not product.tracks_inventory:
        return

    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(stock_quantity=Product.stock_quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    session.execute(stmt)
    session.expire(product, ["stock_quantity"])
    session.add(
        StockMovement(
            product_id=product_id,
            sale_id=sale_id,
            quantity_delta=quantity,
            reason=reason,
            occurred_at=utcnow(),
        )
    )


def available(session, product_id: int) -> int | None:
    """Current quantity, or None for products the ledger does not track."""
    product = _load_product(session, product_id)
    if not product.tracks_inventory:
        return None
    return session.query(Product.stock_quantity).filter(Product.id == product_id).scalar()


def recent_movements(session, product_id: int, limit: int = 20) -> list[StockMovement]:
    _load_product(session, product_id)
    return (
        session.query(StockMovement)
        .filter(StockMovement.product_id == product_id)
        .order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )
