# backend/fiscalpos/services/products_service.py
"""
Products service.

Product rows are created here with their opening stock; afterwards only the
stock ledger changes `stock_quantity`. The kind-specific `attributes` payload
is validated per kind.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..models.inventory import PRODUCT_KINDS
from ..validation import ConflictError, ValidationError, optional_text, require_int, require_money, require_text
from .concurrency import run_atomically

PHYSICAL_ATTRIBUTES = {"weight", "height", "width", "depth"}
DIGITAL_ATTRIBUTES = {"download_url", "license", "max_downloads"}


def _physical_attributes(raw: dict) -> dict:
    cleaned = {}
    for key, value in raw.items():
        if key not in PHYSICAL_ATTRIBUTES:
            raise ValidationError(f"Unknown attribute for PHYSICAL product: {key}")
        if value is None:
            continue
        cleaned[key] = str(require_money(value, key))
    return cleaned


def _digital_attributes(raw: dict) -> dict:
    cleaned = {}
    for key, value in raw.items():
        if key not in DIGITAL_ATTRIBUTES:
            raise ValidationError(f"Unknown attribute for DIGITAL product: {key}")
        if value is None:
            continue
        if key == "max_downloads":
            cleaned[key] = require_int(value, key, minimum=1)
        else:
            cleaned[key] = require_text(value, key, max_length=512)
    return cleaned


def normalize_attributes(kind: str, raw) -> dict:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("attributes must be an object")
    if kind == "PHYSICAL":
        return _physical_attributes(raw)
    elif kind == "DIGITAL":
        return _digital_attributes(raw)
    raise ValueError(f"Unknown product kind {kind!r}")


def create_product(
    *,
    sku,
    name,
    unit_price,
    stock_quantity=0,
    kind: str = "PHYSICAL",
    description=None,
    attributes=None,
) -> Product:
    """Create a product. DIGITAL products always carry zero stock."""
    kind = str(kind or "").strip().upper()
    if kind not in PRODUCT_KINDS:
        raise ValidationError(f"kind must be one of: {', '.join(PRODUCT_KINDS)}")

    product = Product(
        sku=require_text(sku, "sku", max_length=64),
        name=require_text(name, "name", max_length=255),
        description=optional_text(description, "description", max_length=2000),
        kind=kind,
        attributes=normalize_attributes(kind, attributes),
        unit_price=require_money(unit_price, "unit_price"),
        stock_quantity=require_int(stock_quantity, "stock_quantity", minimum=0),
    )
    if kind == "DIGITAL" and product.stock_quantity:
        raise ValidationError("DIGITAL products do not carry stock")

    def _op() -> Product:
        if db.session.query(Product.id).filter_by(sku=product.sku).first() is not None:
            raise ConflictError(f"SKU {product.sku} already exists")
        db.session.add(product)
        try:
            db.session.flush()
        except IntegrityError:
            raise ConflictError(f"SKU {product.sku} already exists")
        return product

    return run_atomically(_op)
