# backend/backoffice/routes/production.py
"""
Manufacturing and stock counts: recipe mixes and stock takes.
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import mixing_service, stocktake_service
from ..validation import require_fields


production_bp = Blueprint("production", __name__, url_prefix="/api")


@production_bp.post("/mixes")
def mix():
    """
    Request body:
    {
        "business_unit_id": int,
        "finished_good_id": int,
        "quantity": decimal,
        "user_id": int (optional)
    }

    Returns:
        201: Mix recorded
        400: No recipe, or invalid quantity
        409: An ingredient is short; nothing was consumed
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "business_unit_id", "finished_good_id", "quantity")
        record = mixing_service.mix(
            business_unit_id=data["business_unit_id"],
            finished_good_id=data["finished_good_id"],
            quantity=data["quantity"],
            user_id=data.get("user_id"),
        )
        return jsonify(record.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Mix failed")
        return jsonify({"error": "Internal server error"}), 500


@production_bp.post("/stock-takes")
def record_stock_take():
    """
    Request body:
    {
        "business_unit_id": int,
        "items": [{"product_id": int, "counted_qty": decimal}],
        "notes": str (optional),
        "user_id": int (optional)
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "business_unit_id", "items")
        take = stocktake_service.record_stock_take(
            business_unit_id=data["business_unit_id"],
            items=data["items"],
            notes=data.get("notes"),
            user_id=data.get("user_id"),
        )
        return jsonify(take.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Stock take failed")
        return jsonify({"error": "Internal server error"}), 500


@production_bp.get("/stock-takes/<int:stock_take_id>")
def get_stock_take(stock_take_id: int):
    try:
        return jsonify(stocktake_service.get_stock_take(stock_take_id).to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
