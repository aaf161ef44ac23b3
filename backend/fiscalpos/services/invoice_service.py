"""
Invoice service - fiscal documents bound 1:1 to emitted sales.

The invoice never mutates its sale. Its number is allocated when it is
created, in the same transaction that inserts it; the 49-digit access key is
derived when it is emitted. Authorization stores whatever the external
authority returned, verbatim.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import AccessKeyIntegrityError, DuplicateInvoiceError, InvoiceNotFoundError, SaleNotFoundError, StateError
from ..extensions import db
from ..models import Invoice, Sale
from ..time_utils import utcnow
from ..validation import ValidationError, require_code, require_int
from .checksum import build_access_key, is_valid_access_key
from .concurrency import lock_for_update, run_atomically
from .document_service import next_invoice_number
from .lifecycle_service import INVOICE_STATUSES, ensure_transition

MAX_PAGE_SIZE = 200


def _issuer_codes(establishment_code: str | None, emission_point_code: str | None) -> tuple[str, str]:
    establishment = establishment_code if establishment_code is not None else current_app.config["ESTABLISHMENT_CODE"]
    point = emission_point_code if emission_point_code is not None else current_app.config["EMISSION_POINT_CODE"]
    return require_code(establishment, "establishment_code"), require_code(point, "emission_point_code")


def _load_invoice(invoice_id: int, *, lock: bool = True) -> Invoice:
    query = db.session.query(Invoice).filter_by(id=invoice_id)
    if lock:
        query = lock_for_update(query)
    invoice = query.first()
    if invoice is None:
        raise InvoiceNotFoundError(invoice_id)
    return invoice


def create_invoice(
    sale_id,
    *,
    establishment_code: str | None = None,
    emission_point_code: str | None = None,
) -> Invoice:
    """
    Create a PENDING invoice for an emitted sale and allocate its number.

    One invoice per sale: checked before insert, and backed by the unique
    index on invoices.sale_id for writers that race past the check.
    """
    sale_id = require_int(sale_id, "sale_id", minimum=1)
    establishment, point = _issuer_codes(establishment_code, emission_point_code)

    def _op() -> Invoice:
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise SaleNotFoundError(sale_id)

        existing_id = db.session.query(Invoice.id).filter_by(sale_id=sale_id).scalar()
        if existing_id is not None:
            raise DuplicateInvoiceError(sale_id, existing_id)

        if sale.status != "EMITTED":
            raise StateError(
                f"Cannot invoice sale {sale_id}: sale is {sale.status}, must be EMITTED",
                current_state=sale.status,
                details={"sale_id": sale_id},
            )

        number, sequential = next_invoice_number(db.session, establishment, point)
        invoice = Invoice(
            sale_id=sale_id,
            establishment_code=establishment,
            emission_point_code=point,
            sequential=sequential,
            number=number,
            status="PENDING",
            emission_date=utcnow(),
        )
        db.session.add(invoice)
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise DuplicateInvoiceError(sale_id) from exc
        return invoice

    invoice = run_atomically(_op)
    current_app.logger.info("Invoice %s allocated number %s for sale %s", invoice.id, invoice.number, sale_id)
    return invoice


def emit_invoice(invoice_id: int) -> Invoice:
    """
    PENDING -> EMITTED.

    The number was fixed when the invoice was created. The access key is
    derived from the emission date currently on the invoice, which is then
    refreshed to now.
    """
    def _op() -> Invoice:
        invoice = _load_invoice(invoice_id)
        ensure_transition("Invoice", invoice.id, invoice.status, "EMITTED")

        if not invoice.access_key:
            invoice.access_key = build_access_key(
                emission_date=invoice.emission_date,
                issuer_tax_id=current_app.config["ISSUER_TAX_ID"],
                environment=current_app.config["ACCESS_KEY_ENVIRONMENT"],
                establishment_code=invoice.establishment_code,
                emission_point_code=invoice.emission_point_code,
                sequential=invoice.sequential,
                emission_type=current_app.config["ACCESS_KEY_EMISSION_TYPE"],
            )

        invoice.status = "EMITTED"
        invoice.emission_date = utcnow()
        db.session.flush()
        return invoice

    invoice = run_atomically(_op)
    current_app.logger.info("Invoice %s (%s) emitted", invoice.id, invoice.number)
    return invoice


def authorize_invoice(invoice_id: int, payload) -> Invoice:
    """EMITTED -> AUTHORIZED, storing the authority's payload verbatim."""
    if not isinstance(payload, str) or not payload.strip():
        raise ValidationError("authorization payload is required")

    def _op() -> Invoice:
        invoice = _load_invoice(invoice_id)
        ensure_transition("Invoice", invoice.id, invoice.status, "AUTHORIZED")
        invoice.authorization_payload = payload
        invoice.status = "AUTHORIZED"
        invoice.authorized_at = utcnow()
        db.session.flush()
        return invoice

    invoice = run_atomically(_op)
    current_app.logger.info("Invoice %s (%s) authorized", invoice.id, invoice.number)
    return invoice


def cancel_invoice(invoice_id: int) -> Invoice:
    """Any non-cancelled state -> CANCELLED. Repeat cancellation raises AlreadyCancelledError."""
    def _op() -> Invoice:
        invoice = _load_invoice(invoice_id)
        ensure_transition("Invoice", invoice.id, invoice.status, "CANCELLED")
        invoice.status = "CANCELLED"
        invoice.cancelled_at = utcnow()
        db.session.flush()
        return invoice

    invoice = run_atomically(_op)
    current_app.logger.info("Invoice %s (%s) cancelled", invoice.id, invoice.number)
    return invoice


def verify_access_key(invoice_id: int) -> bool | None:
    """
    Re-validate the stored access key.

    None when the invoice has no key yet, True when it checks out. A key that
    fails its check digit is corruption: it is logged and raised, never fixed.
    """
    invoice = _load_invoice(invoice_id, lock=False)
    if invoice.access_key is None:
        return None
    if is_valid_access_key(invoice.access_key):
        return True
    current_app.logger.error(
        "Access key integrity failure: invoice %s number %s key %s",
        invoice.id, invoice.number, invoice.access_key,
    )
    raise AccessKeyIntegrityError(invoice.id, invoice.number, invoice.access_key)


def find_corrupt_access_keys() -> list[Invoice]:
    """Every invoice whose stored key fails verification. Each one is logged."""
    corrupt = []
    invoices = db.session.query(Invoice).filter(Invoice.access_key.isnot(None)).order_by(Invoice.id).all()
    for invoice in invoices:
        if not is_valid_access_key(invoice.access_key):
            current_app.logger.error(
                "Access key integrity failure: invoice %s number %s key %s",
                invoice.id, invoice.number, invoice.access_key,
            )
            corrupt.append(invoice)
    return corrupt


def get_invoice(invoice_id: int) -> Invoice:
    return _load_invoice(invoice_id, lock=False)


def find_invoice_by_number(number: str) -> Invoice | None:
    return db.session.query(Invoice).filter_by(number=(number or "").strip()).first()


def find_invoice_by_access_key(access_key: str) -> Invoice | None:
    return db.session.query(Invoice).filter_by(access_key=(access_key or "").strip()).first()


def list_invoices(
    *,
    status: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Invoice], int]:
    """List invoices newest first. Dates filter on emission_date; limit is clamped to [1, 200]."""
    query = db.session.query(Invoice)
    if status:
        status = status.upper()
        if status not in INVOICE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(INVOICE_STATUSES))}")
        query = query.filter(Invoice.status == status)
    if date_from is not None:
        query = query.filter(Invoice.emission_date >= date_from)
    if date_to is not None:
        query = query.filter(Invoice.emission_date <= date_to)

    total = query.count()

    limit = max(1, min(limit, MAX_PAGE_SIZE))
    offset = max(0, offset)
    invoices = query.order_by(Invoice.emission_date.desc(), Invoice.id.desc()).offset(offset).limit(limit).all()
    return invoices, total
