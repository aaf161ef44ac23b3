# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import json_body, list_args, service_errors
from ..services import reporting_service, sales_service
from ..validation import require_int


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/")
@service_errors("create sale")
def create_sale_route():
    """Create a new DRAFT sale. Body: {"customer_id"}."""
    data = json_body()
    sale = sales_service.create_sale(data.get("customer_id"))
    return jsonify({"sale": sale.to_dict(include_lines=True)}), 201


@sales_bp.get("/")
@service_errors("list sales")
def list_sales_route():
    args = list_args()
    customer_id = request.args.get("customer_id")
    sales, total = sales_service.list_sales(
        status=request.args.get("status"),
        customer_id=require_int(customer_id, "customer_id") if customer_id else None,
        **args,
    )
    return jsonify({
        "sales": [sale.to_dict() for sale in sales],
        "total": total,
        "limit": args["limit"],
        "offset": args["offset"],
    }), 200


@sales_bp.get("/summary")
@service_errors("summarize sales")
def sales_summary_route():
    args = list_args()
    return jsonify({"summary": reporting_service.sales_summary(args["date_from"], args["date_to"])}), 200


@sales_bp.get("/<int:sale_id>")
@service_errors("get sale")
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(sale_id)
    return jsonify({"sale": sale.to_dict(include_lines=True)}), 200


@sales_bp.post("/<int:sale_id>/lines")
@service_errors("add sale line")
def add_line_route(sale_id: int):
    """Body: {"product_id", "quantity", "unit_price"?}. Price defaults to the product's."""
    data = json_body()
    line = sales_service.add_line(
        sale_id,
        data.get("product_id"),
        data.get("quantity"),
        data.get("unit_price"),
    )
    return jsonify({"line": line.to_dict(), "sale": line.sale.to_dict()}), 201


@sales_bp.put("/<int:sale_id>/lines")
@service_errors("replace sale lines")
def replace_lines_route(sale_id: int):
    data = json_body()
    sale = sales_service.replace_lines(sale_id, data.get("lines"))
    return jsonify({"sale": sale.to_dict(include_lines=True)}), 200


@sales_bp.delete("/<int:sale_id>/lines/<int:line_number>")
@service_errors("remove sale line")
def remove_line_route(sale_id: int, line_number: int):
    sale = sales_service.remove_line(sale_id, line_number)
    return jsonify({"sale": sale.to_dict(include_lines=True)}), 200


@sales_bp.post("/<int:sale_id>/emit")
@service_errors("emit sale")
def emit_sale_route(sale_id: int):
    """Reserve stock for every line and move the sale to EMITTED."""
    sale = sales_service.emit_sale(sale_id)
    return jsonify({"sale": sale.to_dict(include_lines=True)}), 200


@sales_bp.post("/<int:sale_id>/cancel")
@service_errors("cancel sale")
def cancel_sale_route(sale_id: int):
    sale = sales_service.cancel_sale(sale_id)
    return jsonify({"sale": sale.to_dict(include_lines=True)}), 200


@sales_bp.delete("/<int:sale_id>")
@service_errors("delete sale")
def delete_sale_route(sale_id: int):
    sales_service.delete_sale(sale_id)
    return jsonify({"deleted": True, "sale_id": sale_id}), 200
