# backend/backoffice/routes/sales.py
"""
Point-of-sale API routes.
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import sales_service
from ..validation import require_fields


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
def process_sale():
    """
    Sell a cart in one atomic step.

    Request body:
    {
        "business_unit_id": int,
        "payment_method": "CASH" | "CARD" | "EFT" | "ON_ACCOUNT",
        "lines": [{"product_id": int, "quantity": decimal, "unit_price": decimal (optional)}],
        "safe_id": int (CASH/CARD/EFT),
        "customer_id": int (ON_ACCOUNT),
        "user_id": int (optional)
    }

    Returns:
        201: Sale written
        400: Invalid cart or payment details
        404: Unknown product, safe or customer
        409: Insufficient stock
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "business_unit_id", "payment_method", "lines")
        sale = sales_service.process_sale(
            business_unit_id=data["business_unit_id"],
            lines=data["lines"],
            payment_method=data["payment_method"],
            customer_id=data.get("customer_id"),
            safe_id=data.get("safe_id"),
            user_id=data.get("user_id"),
        )
        return jsonify(sale.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Sale failed")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
def list_sales():
    business_unit_id = request.args.get("business_unit_id", type=int)
    if not business_unit_id:
        return jsonify({"error": "business_unit_id is required"}), 400
    sales = sales_service.list_sales(
        business_unit_id,
        customer_id=request.args.get("customer_id", type=int),
        status=request.args.get("status"),
    )
    return jsonify([sale.to_dict() for sale in sales]), 200


@sales_bp.get("/<int:sale_id>")
def get_sale(sale_id: int):
    try:
        return jsonify(sales_service.get_sale(sale_id).to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
