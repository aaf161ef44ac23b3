from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..time_utils import to_utc_z


class Sale(db.Model):
    """
    Sale document.

    LIFECYCLE: DRAFT -> EMITTED -> CANCELLED (see services/lifecycle_service.py).
    Lines can be added/removed/replaced only while DRAFT. `total` is derived
    from the lines and recomputed by the sales service after every mutation;
    it is stored for listing and reporting.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("status IN ('DRAFT', 'EMITTED', 'CANCELLED')", name="ck_sales_status"),
        db.CheckConstraint("total >= 0", name="ck_sales_total_non_negative"),
        db.Index("ix_sales_status_created", "status", "created_at"),
        db.Index("ix_sales_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="DRAFT", index=True)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    emitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy="dynamic"))
    lines = db.relationship(
        "SaleLine",
        back_populates="sale",
        order_by="SaleLine.line_number",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def next_line_number(self) -> int:
        return max((line.line_number for line in self.lines), default=0) + 1

    def recompute_total(self) -> Decimal:
        self.total = sum((Decimal(line.subtotal) for line in self.lines), Decimal("0.00"))
        return self.total

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "status": self.status,
            "total": str(self.total) if self.total is not None else "0.00",
            "created_at": to_utc_z(self.created_at),
            "emitted_at": to_utc_z(self.emitted_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "line_count": self.line_count,
            "item_count": self.item_count,
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """Line item owned by exactly one sale; numbered from 1 within it."""
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "line_number", name="uq_sale_lines_sale_line_number"),
        db.CheckConstraint("quantity > 0", name="ck_sale_lines_quantity_positive"),
        db.CheckConstraint("unit_price >= 0", name="ck_sale_lines_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)

    sale = db.relationship("Sale", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "subtotal": str(self.subtotal),
        }
