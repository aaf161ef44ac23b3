# Overview: Check-digit algorithms for identity documents and invoice access keys.

"""
Pure validators for the digit strings the fiscal workflow depends on.

None of these functions touch the database, and the is_valid_* checks never
raise: a malformed string (wrong length, non-digits, None) is simply invalid.

Natural-person ID (10 digits)
    Province prefix 01-24, then a mod-10 check: digits at even positions
    0..8 are doubled (minus 9 when above 9), all nine are summed and the
    verifier is (10 - sum % 10) % 10, compared with digit 9.

Tax-registration ID (13 digits)
    Province prefix 01-24. The third digit selects the algorithm:
      0-5  natural person: first 10 digits are a natural-person ID, suffix "001"
      6    public sector: weights 3,2,7,6,5,4,3,2 over digits 0..7, mod 11 -> digit 8
      9    private entity: weights 4,3,2,7,6,5,4,3,2 over digits 0..8, mod 11 -> digit 9
    A mod-11 verifier of 11 maps to 0; 10 can never be valid.

Access key (49 digits)
    Emission date, document type, issuer tax ID, environment, establishment,
    emission point, sequential, nonce and emission type make a 48-digit base;
    a mod-11 check digit computed with weights 2..7 cycling from the first
    base digit completes it.
"""

from __future__ import annotations

import secrets
from datetime import datetime

NATURAL_ID_LENGTH = 10
TAX_ID_LENGTH = 13
ACCESS_KEY_BASE_LENGTH = 48
ACCESS_KEY_LENGTH = 49
INVOICE_DOCUMENT_TYPE = "01"

PUBLIC_SECTOR_WEIGHTS = (3, 2, 7, 6, 5, 4, 3, 2)
PRIVATE_ENTITY_WEIGHTS = (4, 3, 2, 7, 6, 5, 4, 3, 2)
ACCESS_KEY_WEIGHTS = (2, 3, 4, 5, 6, 7)


def _is_digits(value, length: int) -> bool:
    return isinstance(value, str) and len(value) == length and value.isascii() and value.isdigit()


def _has_valid_province(value: str) -> bool:
    return 1 <= int(value[:2]) <= 24


def _mod10_verifier(digits: str) -> int:
    total = 0
    for index, char in enumerate(digits[:9]):
        digit = int(char)
        if index % 2 == 0:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return (10 - (total % 10)) % 10


def _mod11_verifier(digits: str, weights: tuple[int, ...]) -> int | None:
    total = sum(int(char) * weight for char, weight in zip(digits, weights))
    verifier = 11 - (total % 11)
    if verifier == 11:
        return 0
    if verifier == 10:
        return None
    return verifier


def is_valid_natural_person_id(digits) -> bool:
    if not _is_digits(digits, NATURAL_ID_LENGTH):
        return False
    if not _has_valid_province(digits):
        return False
    return _mod10_verifier(digits) == int(digits[9])


def is_valid_tax_id(digits) -> bool:
    if not _is_digits(digits, TAX_ID_LENGTH):
        return False
    if not _has_valid_province(digits):
        return False

    third = int(digits[2])
    if third < 6:
        return digits[10:] == "001" and is_valid_natural_person_id(digits[:10])
    if third == 6:
        verifier = _mod11_verifier(digits[:8], PUBLIC_SECTOR_WEIGHTS)
        return verifier is not None and verifier == int(digits[8])
    if third == 9:
        verifier = _mod11_verifier(digits[:9], PRIVATE_ENTITY_WEIGHTS)
        return verifier is not None and verifier == int(digits[9])
    return False


def access_key_check_digit(base: str) -> int:
    """
    Mod-11 check digit over a 48-digit base.

    Weights 2,3,4,5,6,7 repeat from the leftmost digit onwards.
    A residue of 0 or 1 is used as-is, anything else becomes 11 - residue.
    """
    if not _is_digits(base, ACCESS_KEY_BASE_LENGTH):
        raise ValueError("access key base must be exactly 48 digits")
    total = 0
    for position, char in enumerate(base):
        total += int(char) * ACCESS_KEY_WEIGHTS[position % len(ACCESS_KEY_WEIGHTS)]
    residue = total % 11
    if residue in (0, 1):
        return residue
    return 11 - residue


def generate_nonce() -> str:
    """Random 8-digit numeric code; never all zeros."""
    return f"{secrets.randbelow(99_999_999) + 1:08d}"


def build_access_key(
    *,
    emission_date: datetime,
    issuer_tax_id: str,
    establishment_code: str,
    emission_point_code: str,
    sequential: int,
    document_type: str = INVOICE_DOCUMENT_TYPE,
    environment: str = "1",
    emission_type: str = "1",
    nonce: str | None = None,
) -> str:
    """
    Assemble a 49-digit access key.

    Layout (0-based offsets):
        0-7    emission date, ddmmyyyy
        8-9    document type ("01" for invoices)
        10-22  issuer tax-registration ID
        23     environment (1 test, 2 production)
        24-26  establishment code
        27-29  emission point code
        30-38  sequential, zero-padded
        39-46  numeric nonce
        47     emission type (1 normal emission)
        48     mod-11 check digit

    Raises ValueError when a field does not have its fixed width; callers
    pass validated codes, so this only fires on a programming error.
    """
    nonce = nonce if nonce is not None else generate_nonce()
    fields = (
        ("document_type", document_type, 2),
        ("issuer_tax_id", issuer_tax_id, TAX_ID_LENGTH),
        ("environment", environment, 1),
        ("establishment_code", establishment_code, 3),
        ("emission_point_code", emission_point_code, 3),
        ("nonce", nonce, 8),
        ("emission_type", emission_type, 1),
    )
    for name, value, length in fields:
        if not _is_digits(value, length):
            raise ValueError(f"{name} must be exactly {length} digits")
    if not 0 < sequential <= 999_999_999:
        raise ValueError("sequential must be between 1 and 999999999")

    base = (
        f"{emission_date:%d%m%Y}"
        f"{document_type}"
        f"{issuer_tax_id}"
        f"{environment}"
        f"{establishment_code}"
        f"{emission_point_code}"
        f"{sequential:09d}"
        f"{nonce}"
        f"{emission_type}"
    )
    return f"{base}{access_key_check_digit(base)}"


def is_valid_access_key(key) -> bool:
    if not _is_digits(key, ACCESS_KEY_LENGTH):
        return False
    return access_key_check_digit(key[:ACCESS_KEY_BASE_LENGTH]) == int(key[-1])
