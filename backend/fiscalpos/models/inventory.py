from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

PRODUCT_KINDS = ("PHYSICAL", "DIGITAL")
MOVEMENT_REASONS = ("SALE_EMIT", "SALE_CANCEL")


class Product(db.Model):
    """
    Product master data.

    Physical and digital products share one table. `kind` is the
    discriminator and `attributes` carries the kind-specific payload:
    PHYSICAL -> weight/height/width/depth, DIGITAL -> download_url/license/
    max_downloads.

    STOCK: `stock_quantity` is owned here but only the stock ledger writes it,
    through conditional UPDATE statements. The CHECK constraint makes a
    negative quantity unrepresentable even if a caller bypasses the ledger.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("unit_price >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("kind IN ('PHYSICAL', 'DIGITAL')", name="ck_products_kind"),
        db.Index("ix_products_kind_active", "kind", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    kind = db.Column(db.String(16), nullable=False, default="PHYSICAL")
    attributes = db.Column(db.JSON, nullable=True)

    unit_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} kind={self.kind}>"

    @property
    def tracks_inventory(self) -> bool:
        if self.kind == "PHYSICAL":
            return True
        elif self.kind == "DIGITAL":
            return False
        raise ValueError(f"Unknown product kind {self.kind!r}")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "kind": self.kind,
            "attributes": self.attributes or {},
            "unit_price": str(self.unit_price) if self.unit_price is not None else None,
            "stock_quantity": self.stock_quantity if self.tracks_inventory else None,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only journal of ledger writes.

    One row per successful reserve/release of a PHYSICAL product, written in
    the same transaction as the quantity change, so that
    initial stock + sum(quantity_delta) == products.stock_quantity.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("quantity_delta <> 0", name="ck_stock_movements_delta_non_zero"),
        db.Index("ix_stock_movements_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    quantity_delta = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(32), nullable=False)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)

    product = db.relationship("Product", backref=db.backref("movements", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "sale_id": self.sale_id,
            "quantity_delta": self.quantity_delta,
            "reason": self.reason,
            "occurred_at": to_utc_z(self.occurred_at),
        }
