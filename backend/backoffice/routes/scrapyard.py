# backend/backoffice/routes/scrapyard.py
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import scrap_service
from ..validation import require_fields


scrapyard_bp = Blueprint("scrapyard", __name__, url_prefix="/api/scrapyard")


@scrapyard_bp.post("/buy")
def buy_scrap():
    """
    Pay out for weighed scrap at the current WAC per kg.

    Request body:
    {
        "business_unit_id": int,
        "safe_id": int,
        "items": [{"product_id": int, "weight_kg": decimal}],
        "supplier_id": int (optional),
        "user_id": int (optional)
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "business_unit_id", "safe_id", "items")
        purchases = scrap_service.buy_scrap(
            business_unit_id=data["business_unit_id"],
            items=data["items"],
            safe_id=data["safe_id"],
            supplier_id=data.get("supplier_id"),
            user_id=data.get("user_id"),
        )
        return jsonify([p.to_dict() for p in purchases]), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Scrap purchase failed")
        return jsonify({"error": "Internal server error"}), 500


@scrapyard_bp.post("/sell")
def sell_scrap():
    """
    Request body:
    {
        "business_unit_id": int,
        "product_id": int,
        "weight_kg": decimal,
        "revenue_amount": decimal,
        "safe_id": int,
        "payment_method": "CASH" | "CARD" | "EFT" (optional, default EFT),
        "buyer_id": int (optional),
        "invoice_number": str (optional),
        "user_id": int (optional)
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "business_unit_id", "product_id", "weight_kg", "revenue_amount", "safe_id")
        sale = scrap_service.sell_scrap(
            business_unit_id=data["business_unit_id"],
            product_id=data["product_id"],
            weight_kg=data["weight_kg"],
            revenue_amount=data["revenue_amount"],
            safe_id=data["safe_id"],
            buyer_id=data.get("buyer_id"),
            invoice_number=data.get("invoice_number"),
            payment_method=data.get("payment_method", "EFT"),
            user_id=data.get("user_id"),
        )
        return jsonify(sale.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Scrap sale failed")
        return jsonify({"error": "Internal server error"}), 500
