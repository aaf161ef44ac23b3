# Overview: Invoice number sequencer; allocates EEE-PPP-SSSSSSSSS numbers per emission point.

from __future__ import annotations

import re

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import DomainError
from ..models import Invoice, InvoiceSequence
from ..validation import require_code

INVOICE_NUMBER_RE = re.compile(r"^(\d{3})-(\d{3})-(\d{9})$")
MAX_SEQUENTIAL = 999_999_999


class DocumentSequenceError(DomainError):
    """Raised when a sequence cannot produce another number."""
    code = "sequence_exhausted"
    http_status = 409


def format_invoice_number(establishment_code: str, emission_point_code: str, sequential: int) -> str:
    return f"{establishment_code}-{emission_point_code}-{sequential:09d}"


def parse_invoice_number(number: str | None) -> tuple[str, str, int] | None:
    """Split a formatted number, or None if it does not follow the pattern."""
    if not number:
        return None
    match = INVOICE_NUMBER_RE.match(number)
    if not match:
        return None
    return match.group(1), match.group(2), int(match.group(3))


def highest_issued_sequential(session, establishment_code: str, emission_point_code: str) -> int:
    """
    Highest sequential already present on an invoice for this pair, 0 if none.

    Numbers that do not match the pattern are ignored.
    """
    numbers = (
        session.query(Invoice.number)
        .filter(Invoice.number.like(f"{establishment_code}-{emission_point_code}-%"))
        .all()
    )
    highest = 0
    for (number,) in numbers:
        parsed = parse_invoice_number(number)
        if parsed and parsed[0] == establishment_code and parsed[1] == emission_point_code:
            highest = max(highest, parsed[2])
    return highest


def next_invoice_number(session, establishment_code: str, emission_point_code: str) -> tuple[str, int]:
    """
    Atomically allocate the next invoice number for an emission point.

    The counter row is advanced with a single UPDATE ... SET n = n + 1, so the
    row lock (or SQLite's writer lock) serializes concurrent allocators. When
    the pair has no counter row yet it is created, seeded from the highest
    number already issued, inside a savepoint; losing that insert race falls
    back to the UPDATE. Must be called inside the transaction that persists
    the invoice. Gaps are possible when that transaction rolls back.

    Returns (formatted number, sequential).
    """
    establishment_code = require_code(establishment_code, "establishment_code")
    emission_point_code = require_code(emission_point_code, "emission_point_code")

    stmt = (
        update(InvoiceSequence)
        .where(
            InvoiceSequence.establishment_code == establishment_code,
            InvoiceSequence.emission_point_code == emission_point_code,
            InvoiceSequence.last_sequential < MAX_SEQUENTIAL,
        )
        .values(last_sequential=InvoiceSequence.last_sequential + 1)
        .execution_options(synchronize_session=False)
    )

    def _current() -> int | None:
        return (
            session.query(InvoiceSequence.last_sequential)
            .filter_by(establishment_code=establishment_code, emission_point_code=emission_point_code)
            .scalar()
        )

    result = session.execute(stmt)
    if result.rowcount:
        sequential = _current()
    elif _current() is not None:
        raise DocumentSequenceError(
            f"Sequence {establishment_code}-{emission_point_code} is exhausted"
        )
    else:
        sequential = highest_issued_sequential(session, establishment_code, emission_point_code) + 1
        if sequential > MAX_SEQUENTIAL:
            raise DocumentSequenceError(
                f"Sequence {establishment_code}-{emission_point_code} is exhausted"
            )
        try:
            with session.begin_nested():
                session.add(
                    InvoiceSequence(
                        establishment_code=establishment_code,
                        emission_point_code=emission_point_code,
                        last_sequential=sequential,
                    )
                )
        except IntegrityError:
            result = session.execute(stmt)
            if not result.rowcount:
                raise
            sequential = _current()

    return format_invoice_number(establishment_code, emission_point_code, sequential), sequential
