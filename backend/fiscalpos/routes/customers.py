# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import json_body, service_errors
from ..errors import CustomerNotFoundError
from ..services import customer_service


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.post("/")
@service_errors("register customer")
def register_customer_route():
    """
    Register a NATURAL or JURIDICAL customer.

    The identity document is validated for the customer's kind before
    anything is stored; invalid digits are a 400, a duplicate a 409.
    """
    customer = customer_service.register_customer(json_body())
    return jsonify({"customer": customer.to_dict()}), 201


@customers_bp.get("/")
@service_errors("find customer")
def find_customer_route():
    """Lookup by ?document=<digits>."""
    document = request.args.get("document")
    if not document:
        return jsonify({"error": "document query parameter required"}), 400
    customer = customer_service.find_customer_by_document(document)
    if customer is None:
        raise CustomerNotFoundError(document, field="document_number")
    return jsonify({"customer": customer.to_dict()}), 200


@customers_bp.get("/<int:customer_id>")
@service_errors("get customer")
def get_customer_route(customer_id: int):
    customer = customer_service.get_customer(customer_id)
    return jsonify({"customer": customer.to_dict()}), 200


@customers_bp.patch("/<int:customer_id>/document")
@service_errors("update customer document")
def update_document_route(customer_id: int):
    data = json_body()
    customer = customer_service.update_customer_document(customer_id, data.get("document_number"))
    return jsonify({"customer": customer.to_dict()}), 200
