# backend/backoffice/routes/purchasing.py
"""
Purchase order API routes.
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import purchasing_service
from ..validation import require_fields


purchasing_bp = Blueprint("purchasing", __name__, url_prefix="/api/purchase-orders")


@purchasing_bp.post("")
def create_purchase_order():
    """
    Request body:
    {
        "supplier_id": int,
        "business_unit_id": int,
        "items": [{"product_id": int, "quantity": decimal, "cost_at_order": decimal}],
        "user_id": int (optional)
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "supplier_id", "business_unit_id", "items")
        order = purchasing_service.create_purchase_order(
            supplier_id=data["supplier_id"],
            business_unit_id=data["business_unit_id"],
            items=data["items"],
            user_id=data.get("user_id"),
        )
        return jsonify(order.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Internal server error"}), 500


@purchasing_bp.get("")
def list_purchase_orders():
    business_unit_id = request.args.get("business_unit_id", type=int)
    if not business_unit_id:
        return jsonify({"error": "business_unit_id is required"}), 400
    orders = purchasing_service.list_purchase_orders(business_unit_id, status=request.args.get("status"))
    return jsonify([order.to_dict() for order in orders]), 200


@purchasing_bp.get("/<int:purchase_order_id>")
def get_purchase_order(purchase_order_id: int):
    try:
        order = purchasing_service.get_purchase_order(purchase_order_id)
        body = order.to_dict()
        body["receipts"] = [r.to_dict() for r in purchasing_service.list_receipts(purchase_order_id)]
        return jsonify(body), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@purchasing_bp.post("/<int:purchase_order_id>/receive")
def receive_purchase_order(purchase_order_id: int):
    """
    Book a full or partial delivery.

    Request body (optional):
    {
        "lines": [{"product_id": int, "quantity_received": decimal}],
        "user_id": int
    }

    Returns:
        200: Receipts written; purchase order returned with them
        400: Over-receipt, or the order is already received
        404: Unknown purchase order or line
    """
    data = request.get_json(silent=True) or {}
    try:
        receipts = purchasing_service.receive_purchase_order(
            purchase_order_id,
            data.get("lines"),
            user_id=data.get("user_id"),
        )
        order = purchasing_service.get_purchase_order(purchase_order_id)
        body = order.to_dict()
        body["receipts"] = [r.to_dict() for r in receipts]
        return jsonify(body), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Receipt against purchase order %s failed", purchase_order_id)
        return jsonify({"error": "Internal server error"}), 500
