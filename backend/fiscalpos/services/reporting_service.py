# Overview: Read-only aggregates over sales and invoices.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import Invoice, Sale
from ..validation import quantize_money


def _money(value) -> str:
    if value is None:
        return "0.00"
    return str(quantize_money(Decimal(str(value))))


def _date_filtered(query, column, date_from: datetime | None, date_to: datetime | None):
    if date_from is not None:
        query = query.filter(column >= date_from)
    if date_to is not None:
        query = query.filter(column <= date_to)
    return query


def sales_summary(date_from: datetime | None = None, date_to: datetime | None = None) -> dict:
    """
    Counts and amounts over sales created in the window.

    Amounts only consider sales that are currently EMITTED: drafts were never
    billed and cancelled sales were reversed.
    """
    base = _date_filtered(db.session.query(Sale), Sale.created_at, date_from, date_to)
    total_sales = base.count()

    emitted = _date_filtered(
        db.session.query(
            func.count(Sale.id),
            func.sum(Sale.total),
            func.avg(Sale.total),
            func.max(Sale.total),
            func.min(Sale.total),
        ).filter(Sale.status == "EMITTED"),
        Sale.created_at,
        date_from,
        date_to,
    ).one()

    by_status = dict(
        _date_filtered(
            db.session.query(Sale.status, func.count(Sale.id)),
            Sale.created_at,
            date_from,
            date_to,
        ).group_by(Sale.status).all()
    )

    return {
        "total_sales": total_sales,
        "emitted_sales": emitted[0] or 0,
        "by_status": {status: by_status.get(status, 0) for status in ("DRAFT", "EMITTED", "CANCELLED")},
        "total_billed": _money(emitted[1]),
        "average_sale": _money(emitted[2]),
        "largest_sale": _money(emitted[3]),
        "smallest_sale": _money(emitted[4]),
    }


def invoice_summary(date_from: datetime | None = None, date_to: datetime | None = None) -> dict:
    """Invoice counts in the window plus the billed amount over AUTHORIZED invoices."""
    base = _date_filtered(db.session.query(Invoice), Invoice.emission_date, date_from, date_to)
    total_invoices = base.count()

    authorized = _date_filtered(
        db.session.query(func.count(Invoice.id), func.sum(Sale.total))
        .join(Sale, Sale.id == Invoice.sale_id)
        .filter(Invoice.status == "AUTHORIZED"),
        Invoice.emission_date,
        date_from,
        date_to,
    ).one()

    return {
        "total_invoices": total_invoices,
        "authorized_invoices": authorized[0] or 0,
        "total_billed": _money(authorized[1]),
    }
