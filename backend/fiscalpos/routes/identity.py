# Overview: Flask API route exposing the identity-document check digits.

from flask import Blueprint, jsonify

from ..decorators import json_body, service_errors
from ..services.checksum import is_valid_natural_person_id, is_valid_tax_id
from ..validation import ValidationError


identity_bp = Blueprint("identity", __name__, url_prefix="/api/identity")

_VALIDATORS = {
    "natural": is_valid_natural_person_id,
    "tax": is_valid_tax_id,
}


@identity_bp.post("/validate")
@service_errors("validate identity document")
def validate_document_route():
    """
    Body: {"document_type": "natural" | "tax", "digits": "..."}.

    Always 200 with {"valid": bool} for a known document type; the digits
    themselves are never a request error.
    """
    data = json_body()
    document_type = str(data.get("document_type") or "").strip().lower()
    validator = _VALIDATORS.get(document_type)
    if validator is None:
        raise ValidationError("document_type must be 'natural' or 'tax'")
    digits = data.get("digits")
    return jsonify({"document_type": document_type, "valid": validator(digits)}), 200
