# backend/backoffice/routes/transfers.py
"""
Internal stock transfer API routes.
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import transfer_service
from ..validation import require_fields


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


@transfers_bp.post("")
def request_transfer():
    """
    Request body:
    {
        "requesting_unit_id": int,
        "providing_unit_id": int,
        "product_id": int,
        "quantity_requested": decimal,
        "destination_product_id": int (optional),
        "user_id": int (optional)
    }

    Returns:
        201: Transfer requested (PENDING)
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "requesting_unit_id", "providing_unit_id", "product_id", "quantity_requested")
        transfer = transfer_service.request_transfer(
            requesting_unit_id=data["requesting_unit_id"],
            providing_unit_id=data["providing_unit_id"],
            product_id=data["product_id"],
            quantity_requested=data["quantity_requested"],
            destination_product_id=data.get("destination_product_id"),
            user_id=data.get("user_id"),
        )
        return jsonify(transfer.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to request transfer")
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.get("")
def list_transfers():
    business_unit_id = request.args.get("business_unit_id", type=int)
    if not business_unit_id:
        return jsonify({"error": "business_unit_id is required"}), 400
    transfers = transfer_service.list_transfers(business_unit_id, status=request.args.get("status"))
    return jsonify([t.to_dict() for t in transfers]), 200


@transfers_bp.get("/<int:transfer_id>")
def get_transfer(transfer_id: int):
    try:
        return jsonify(transfer_service.get_transfer(transfer_id).to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@transfers_bp.post("/<int:transfer_id>/fulfil")
def fulfil_transfer(transfer_id: int):
    """
    Returns:
        200: Transfer completed
        400: Transfer is not PENDING
        404: Transfer not found
        409: Provider is short of stock
    """
    data = request.get_json(silent=True) or {}
    try:
        transfer = transfer_service.fulfil_transfer(transfer_id, user_id=data.get("user_id"))
        return jsonify(transfer.to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to fulfil transfer %s", transfer_id)
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.post("/<int:transfer_id>/cancel")
def cancel_transfer(transfer_id: int):
    data = request.get_json(silent=True) or {}
    try:
        transfer = transfer_service.cancel_transfer(
            transfer_id,
            reason=data.get("reason"),
            user_id=data.get("user_id"),
        )
        return jsonify(transfer.to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel transfer %s", transfer_id)
        return jsonify({"error": "Internal server error"}), 500
