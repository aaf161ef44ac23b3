# Overview: Service-layer operations for lifecycle; the transition tables for sales and invoices.

"""
Document lifecycle rules.

SALE:
    DRAFT -> EMITTED -> CANCELLED

    DRAFT:     lines editable, no stock committed, may be deleted
    EMITTED:   stock reserved for every physical line, lines frozen
    CANCELLED: stock returned, terminal

INVOICE:
    PENDING -> EMITTED -> AUTHORIZED
    PENDING | EMITTED | AUTHORIZED -> CANCELLED

    PENDING:    number allocated, no access key yet
    EMITTED:    access key assigned
    AUTHORIZED: opaque authority payload stored
    CANCELLED:  terminal

Same-state transitions are never valid: re-emitting or re-cancelling is
rejected rather than treated as a no-op.
"""

from __future__ import annotations

from typing import Literal

from ..errors import AlreadyCancelledError, StateError


SaleStatus = Literal["DRAFT", "EMITTED", "CANCELLED"]
InvoiceStatus = Literal["PENDING", "EMITTED", "AUTHORIZED", "CANCELLED"]

SALE_STATUSES = {"DRAFT", "EMITTED", "CANCELLED"}
INVOICE_STATUSES = {"PENDING", "EMITTED", "AUTHORIZED", "CANCELLED"}

SALE_TRANSITIONS = {
    ("DRAFT", "EMITTED"),
    ("EMITTED", "CANCELLED"),
}

INVOICE_TRANSITIONS = {
    ("PENDING", "EMITTED"),
    ("EMITTED", "AUTHORIZED"),
    ("PENDING", "CANCELLED"),
    ("EMITTED", "CANCELLED"),
    ("AUTHORIZED", "CANCELLED"),
}

_TABLES = {
    "Sale": (SALE_STATUSES, SALE_TRANSITIONS),
    "Invoice": (INVOICE_STATUSES, INVOICE_TRANSITIONS),
}


def can_transition(entity: str, from_status: str, to_status: str) -> bool:
    """
    Check a transition against the table for `entity` ("Sale" or "Invoice").

    Unknown statuses are a programming error, not a user error.
    """
    statuses, transitions = _TABLES[entity]
    for status in (from_status, to_status):
        if status not in statuses:
            raise ValueError(
                f"Invalid {entity.lower()} status '{status}'. "
                f"Must be one of: {', '.join(sorted(statuses))}"
            )
    return (from_status, to_status) in transitions


def ensure_transition(entity: str, entity_id: int, from_status: str, to_status: str) -> None:
    """
    Raise if `entity` may not move from `from_status` to `to_status`.

    Repeat cancellation gets its own error type so callers can tell it apart
    from other illegal moves.
    """
    if can_transition(entity, from_status, to_status):
        return
    if to_status == "CANCELLED" and from_status == "CANCELLED":
        raise AlreadyCancelledError(entity, entity_id)
    raise StateError(
        f"Cannot move {entity.lower()} {entity_id} from {from_status} to {to_status}",
        current_state=from_status,
        details={f"{entity.lower()}_id": entity_id, "requested_state": to_status},
    )


def ensure_status(entity: str, entity_id: int, current: str, required: str, action: str) -> None:
    """Guard for operations that are only legal in one state (e.g. editing a DRAFT)."""
    if current != required:
        raise StateError(
            f"Cannot {action}: {entity.lower()} {entity_id} is {current}, must be {required}",
            current_state=current,
            details={f"{entity.lower()}_id": entity_id},
        )
