from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

CUSTOMER_KINDS = ("NATURAL", "JURIDICAL")


class Customer(db.Model):
    """
    Customer master data.

    NATURAL customers are people identified by a 10-digit ID and carry
    first/last names. JURIDICAL customers are entities identified by a
    13-digit tax ID and carry a business name plus an optional legal
    representative.

    Document validity is never stored: it is recomputed by the customer
    service whenever `document_number` is written.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("document_number", name="uq_customers_document_number"),
        db.CheckConstraint("kind IN ('NATURAL', 'JURIDICAL')", name="ck_customers_kind"),
        db.Index("ix_customers_kind_active", "kind", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(16), nullable=False)
    document_number = db.Column(db.String(13), nullable=False)

    # NATURAL
    first_name = db.Column(db.String(128), nullable=True)
    last_name = db.Column(db.String(128), nullable=True)

    # JURIDICAL
    business_name = db.Column(db.String(255), nullable=True)
    legal_representative = db.Column(db.String(255), nullable=True)

    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def display_name(self) -> str:
        if self.kind == "NATURAL":
            return f"{self.first_name or ''} {self.last_name or ''}".strip()
        elif self.kind == "JURIDICAL":
            return self.business_name or ""
        raise ValueError(f"Unknown customer kind {self.kind!r}")

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "kind": self.kind,
            "document_number": self.document_number,
            "display_name": self.display_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if self.kind == "NATURAL":
            data["first_name"] = self.first_name
            data["last_name"] = self.last_name
        else:
            data["business_name"] = self.business_name
            data["legal_representative"] = self.legal_representative
        return data
