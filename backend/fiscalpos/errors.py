# Overview: Domain error hierarchy raised by the service layer and mapped to JSON by routes.

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for expected business outcomes.

    Routes translate these into `{"error", "code", "details"}` bodies using
    `http_status`; they are never logged as server errors.
    """
    code = "domain_error"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


class StateError(DomainError):
    """Illegal lifecycle transition. Always names the state the entity is in."""
    code = "invalid_transition"
    http_status = 409

    def __init__(self, message: str, *, current_state: str, details: dict | None = None):
        details = dict(details or {})
        details.setdefault("current_state", current_state)
        super().__init__(message, details)
        self.current_state = current_state


class AlreadyCancelledError(StateError):
    code = "already_cancelled"

    def __init__(self, entity: str, entity_id: int):
        super().__init__(
            f"{entity} {entity_id} is already cancelled",
            current_state="CANCELLED",
            details={f"{entity.lower()}_id": entity_id},
        )


class ResourceError(DomainError):
    """Expected, recoverable outcome the caller can react to."""
    code = "resource_error"
    http_status = 409


class InsufficientStockError(ResourceError):
    code = "insufficient_stock"

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product {product_id}",
            details={
                "product_id": product_id,
                "requested_quantity": requested,
                "available_quantity": available,
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class DuplicateInvoiceError(ResourceError):
    code = "duplicate_invoice"

    def __init__(self, sale_id: int, existing_invoice_id: int | None = None):
        super().__init__(
            f"Sale {sale_id} already has an invoice",
            details={"sale_id": sale_id, "existing_invoice_id": existing_invoice_id},
        )
        self.sale_id = sale_id
        self.existing_invoice_id = existing_invoice_id


class NotFoundError(ResourceError):
    code = "not_found"
    http_status = 404
    entity = "Resource"

    def __init__(self, entity_id, field: str | None = None):
        field = field or f"{self.entity.lower()}_id"
        super().__init__(
            f"{self.entity} {entity_id} not found",
            details={field: entity_id},
        )
        self.entity_id = entity_id


class SaleNotFoundError(NotFoundError):
    code = "sale_not_found"
    entity = "Sale"


class InvoiceNotFoundError(NotFoundError):
    code = "invoice_not_found"
    entity = "Invoice"


class ProductNotFoundError(NotFoundError):
    code = "product_not_found"
    entity = "Product"


class CustomerNotFoundError(NotFoundError):
    code = "customer_not_found"
    entity = "Customer"


class AccessKeyIntegrityError(DomainError):
    """A stored access key no longer satisfies its check digit. Data corruption."""
    code = "access_key_integrity"
    http_status = 500

    def __init__(self, invoice_id: int, number: str | None, access_key: str | None):
        super().__init__(
            f"Access key of invoice {invoice_id} fails verification",
            details={"invoice_id": invoice_id, "number": number, "access_key": access_key},
        )
        self.invoice_id = invoice_id
