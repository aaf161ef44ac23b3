# Overview: Service-layer operations for customers; identity documents gate every write.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import CustomerNotFoundError
from ..extensions import db
from ..models import Customer
from ..models.customers import CUSTOMER_KINDS
from ..validation import ConflictError, ValidationError, optional_email, optional_text, require_text
from .checksum import is_valid_natural_person_id, is_valid_tax_id
from .concurrency import run_atomically


def document_is_valid(kind: str, document_number: str) -> bool:
    if kind == "NATURAL":
        return is_valid_natural_person_id(document_number)
    elif kind == "JURIDICAL":
        return is_valid_tax_id(document_number)
    raise ValueError(f"Unknown customer kind {kind!r}")


def _require_kind(kind) -> str:
    kind = str(kind or "").strip().upper()
    if kind not in CUSTOMER_KINDS:
        raise ValidationError(f"kind must be one of: {', '.join(CUSTOMER_KINDS)}")
    return kind


def _require_document(kind: str, raw) -> str:
    document_number = str(raw or "").strip()
    if not document_is_valid(kind, document_number):
        label = "natural-person ID" if kind == "NATURAL" else "tax-registration ID"
        raise ValidationError(f"document_number is not a valid {label}")
    return document_number


def _ensure_document_free(document_number: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Customer.id).filter(Customer.document_number == document_number)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"document_number {document_number} is already registered")


def register_customer(payload: dict) -> Customer:
    """
    Create a customer after validating its identity document.

    NATURAL requires first_name/last_name and a valid 10-digit ID.
    JURIDICAL requires business_name and a valid 13-digit tax ID.
    Everything is validated before anything is written.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    kind = _require_kind(payload.get("kind"))
    document_number = _require_document(kind, payload.get("document_number"))

    customer = Customer(
        kind=kind,
        document_number=document_number,
        email=optional_email(payload.get("email")),
        phone=optional_text(payload.get("phone"), "phone", max_length=32),
        address=optional_text(payload.get("address"), "address", max_length=255),
    )
    if kind == "NATURAL":
        customer.first_name = require_text(payload.get("first_name"), "first_name", max_length=128)
        customer.last_name = require_text(payload.get("last_name"), "last_name", max_length=128)
    elif kind == "JURIDICAL":
        customer.business_name = require_text(payload.get("business_name"), "business_name", max_length=255)
        customer.legal_representative = optional_text(
            payload.get("legal_representative"), "legal_representative", max_length=255
        )

    def _op() -> Customer:
        _ensure_document_free(document_number)
        db.session.add(customer)
        try:
            db.session.flush()
        except IntegrityError:
            raise ConflictError(f"document_number {document_number} is already registered")
        return customer

    return run_atomically(_op)


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise CustomerNotFoundError(customer_id)
    return customer


def customer_exists(customer_id: int) -> bool:
    return db.session.query(Customer.id).filter(
        Customer.id == customer_id,
        Customer.is_active.is_(True),
    ).first() is not None


def find_customer_by_document(document_number: str) -> Customer | None:
    document_number = str(document_number or "").strip()
    if not document_number:
        return None
    return db.session.query(Customer).filter_by(document_number=document_number).first()


def update_customer_document(customer_id: int, document_number: str) -> Customer:
    """Change the identity document; the new digits are re-validated for the customer's kind."""
    def _op() -> Customer:
        customer = get_customer(customer_id)
        new_document = _require_document(customer.kind, document_number)
        if new_document == customer.document_number:
            return customer
        _ensure_document_free(new_document, exclude_id=customer.id)
        customer.document_number = new_document
        try:
            db.session.flush()
        except IntegrityError:
            raise ConflictError(f"document_number {new_document} is already registered")
        return customer

    return run_atomically(_op)
