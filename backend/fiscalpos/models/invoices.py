from __future__ import annotations

from sqlalchemy.orm import validates

from ..errors import StateError
from ..extensions import db
from ..time_utils import to_utc_z

# Columns that are frozen once an invoice leaves PENDING
_IMMUTABLE_AFTER_PENDING = ("sale_id", "number", "establishment_code", "emission_point_code", "sequential")


class Invoice(db.Model):
    """
    Fiscal invoice bound 1:1 to an emitted sale.

    LIFECYCLE: PENDING -> EMITTED -> AUTHORIZED, and any non-cancelled state
    -> CANCELLED (terminal).

    NUMBERING: `number` is EEE-PPP-SSSSSSSSS, allocated from
    InvoiceSequence for the (establishment_code, emission_point_code) pair
    when the invoice is created. `sequential` keeps the numeric part so
    ordering and uniqueness do not depend on string parsing.

    ACCESS KEY: 49 digits, set on emission; the last digit is a mod-11 check
    digit over the first 48 (services/checksum.py).
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("sale_id", name="uq_invoices_sale_id"),
        db.UniqueConstraint("number", name="uq_invoices_number"),
        db.UniqueConstraint("access_key", name="uq_invoices_access_key"),
        db.UniqueConstraint(
            "establishment_code", "emission_point_code", "sequential",
            name="uq_invoices_point_sequential",
        ),
        db.CheckConstraint(
            "status IN ('PENDING', 'EMITTED', 'AUTHORIZED', 'CANCELLED')",
            name="ck_invoices_status",
        ),
        db.Index("ix_invoices_status_emission", "status", "emission_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False)

    establishment_code = db.Column(db.String(3), nullable=False)
    emission_point_code = db.Column(db.String(3), nullable=False)
    sequential = db.Column(db.Integer, nullable=False)
    number = db.Column(db.String(17), nullable=False)

    access_key = db.Column(db.String(49), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)

    emission_date = db.Column(db.DateTime(timezone=True), nullable=False)
    authorization_payload = db.Column(db.Text, nullable=True)
    authorized_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    sale = db.relationship("Sale", backref=db.backref("invoice", uselist=False))
    __mapper_args__ = {"version_id_col": version_id}

    @validates(*_IMMUTABLE_AFTER_PENDING)
    def _freeze_after_pending(self, key, value):
        # reading status first refreshes expired columns, so __dict__ holds the stored value
        status = self.status
        current = self.__dict__.get(key)
        if status not in (None, "PENDING") and current is not None and value != current:
            raise StateError(
                f"Invoice {self.id}: {key} cannot change once the invoice is {status}",
                current_state=status,
                details={"invoice_id": self.id, "field": key},
            )
        return value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "number": self.number,
            "establishment_code": self.establishment_code,
            "emission_point_code": self.emission_point_code,
            "sequential": self.sequential,
            "access_key": self.access_key,
            "status": self.status,
            "emission_date": to_utc_z(self.emission_date),
            "authorization_payload": self.authorization_payload,
            "authorized_at": to_utc_z(self.authorized_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class InvoiceSequence(db.Model):
    """
    Counter row per (establishment, emission point).

    `last_sequential` is advanced with a single conditional UPDATE so two
    writers can never read the same value (services/document_service.py).
    """
    __tablename__ = "invoice_sequences"
    __table_args__ = (
        db.UniqueConstraint("establishment_code", "emission_point_code", name="uq_invoice_sequences_point"),
        db.CheckConstraint("last_sequential >= 0", name="ck_invoice_sequences_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    establishment_code = db.Column(db.String(3), nullable=False)
    emission_point_code = db.Column(db.String(3), nullable=False)
    last_sequential = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "establishment_code": self.establishment_code,
            "emission_point_code": self.emission_point_code,
            "last_sequential": self.last_sequential,
            "updated_at": to_utc_z(self.updated_at),
        }
