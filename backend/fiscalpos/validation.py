from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any


# Maximum unit price accepted on a product or line: 9,999,999.99
MAX_AMOUNT = Decimal("9999999.99")
CENTS = Decimal("0.01")

_CODE_RE = re.compile(r"^\d{3}$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def require_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer coercion for request payloads.

    Rejects bools, floats, decimal strings and scientific notation so that
    "2.5" or 1e3 never silently become a quantity.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def require_money(value: Any, field: str) -> Decimal:
    """Coerce a non-negative amount with at most two decimals."""
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a decimal amount")
    if isinstance(value, float):
        # go through str() so 10.1 stays 10.1 instead of its binary expansion
        value = str(value)
    try:
        amount = Decimal(str(value).strip()) if not isinstance(value, Decimal) else value
    except InvalidOperation:
        raise ValidationError(f"{field} must be a decimal amount")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a decimal amount")
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")
    if amount != amount.quantize(CENTS):
        raise ValidationError(f"{field} cannot have more than two decimals")
    return quantize_money(amount)


def require_text(value: Any, field: str, *, max_length: int) -> str:
    if value is None:
        raise ValidationError(f"{field} is required")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} cannot be blank")
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def optional_text(value: Any, field: str, *, max_length: int) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def require_code(value: Any, field: str) -> str:
    """Establishment and emission point codes are exactly three digits."""
    code = str(value).strip() if value is not None else ""
    if not _CODE_RE.match(code):
        raise ValidationError(f"{field} must be exactly 3 digits")
    return code


def optional_email(value: Any) -> str | None:
    email = optional_text(value, "email", max_length=255)
    if email is None:
        return None
    if not _EMAIL_RE.match(email):
        raise ValidationError("email is not a valid address")
    return email.lower()
