# Overview: Flask API routes for invoices; parses input and returns JSON responses.

import json

from flask import Blueprint, jsonify, request

from ..decorators import json_body, list_args, service_errors
from ..errors import InvoiceNotFoundError
from ..services import invoice_service, reporting_service


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.post("/")
@service_errors("create invoice")
def create_invoice_route():
    """
    Create a PENDING invoice for an emitted sale.

    Body: {"sale_id", "establishment_code"?, "emission_point_code"?}.
    Codes default to the configured issuer.
    """
    data = json_body()
    invoice = invoice_service.create_invoice(
        data.get("sale_id"),
        establishment_code=data.get("establishment_code"),
        emission_point_code=data.get("emission_point_code"),
    )
    return jsonify({"invoice": invoice.to_dict()}), 201


@invoices_bp.get("/")
@service_errors("list invoices")
def list_invoices_route():
    args = list_args()
    invoices, total = invoice_service.list_invoices(status=request.args.get("status"), **args)
    return jsonify({
        "invoices": [invoice.to_dict() for invoice in invoices],
        "total": total,
        "limit": args["limit"],
        "offset": args["offset"],
    }), 200


@invoices_bp.get("/summary")
@service_errors("summarize invoices")
def invoice_summary_route():
    args = list_args()
    return jsonify({"summary": reporting_service.invoice_summary(args["date_from"], args["date_to"])}), 200


@invoices_bp.get("/<int:invoice_id>")
@service_errors("get invoice")
def get_invoice_route(invoice_id: int):
    invoice = invoice_service.get_invoice(invoice_id)
    return jsonify({"invoice": invoice.to_dict()}), 200


@invoices_bp.get("/by-number/<string:number>")
@service_errors("find invoice by number")
def find_by_number_route(number: str):
    invoice = invoice_service.find_invoice_by_number(number)
    if invoice is None:
        raise InvoiceNotFoundError(number, field="number")
    return jsonify({"invoice": invoice.to_dict()}), 200


@invoices_bp.get("/by-access-key/<string:access_key>")
@service_errors("find invoice by access key")
def find_by_access_key_route(access_key: str):
    invoice = invoice_service.find_invoice_by_access_key(access_key)
    if invoice is None:
        raise InvoiceNotFoundError(access_key, field="access_key")
    return jsonify({"invoice": invoice.to_dict()}), 200


@invoices_bp.post("/<int:invoice_id>/emit")
@service_errors("emit invoice")
def emit_invoice_route(invoice_id: int):
    invoice = invoice_service.emit_invoice(invoice_id)
    return jsonify({
        "invoice": invoice.to_dict(),
        "number": invoice.number,
        "access_key": invoice.access_key,
    }), 200


@invoices_bp.post("/<int:invoice_id>/authorize")
@service_errors("authorize invoice")
def authorize_invoice_route(invoice_id: int):
    """
    Body: {"authorization": <opaque>}.

    Strings are stored as given; any other JSON value is stored as its JSON text.
    """
    data = json_body()
    payload = data.get("authorization")
    if payload is not None and not isinstance(payload, str):
        payload = json.dumps(payload, sort_keys=True)
    invoice = invoice_service.authorize_invoice(invoice_id, payload)
    return jsonify({"invoice": invoice.to_dict()}), 200


@invoices_bp.post("/<int:invoice_id>/cancel")
@service_errors("cancel invoice")
def cancel_invoice_route(invoice_id: int):
    invoice = invoice_service.cancel_invoice(invoice_id)
    return jsonify({"invoice": invoice.to_dict()}), 200


@invoices_bp.get("/<int:invoice_id>/verify")
@service_errors("verify access key")
def verify_access_key_route(invoice_id: int):
    valid = invoice_service.verify_access_key(invoice_id)
    return jsonify({"invoice_id": invoice_id, "valid": valid}), 200
