# backend/backoffice/routes/business_units.py
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import business_unit_service
from ..validation import require_fields


business_units_bp = Blueprint("business_units", __name__, url_prefix="/api/business-units")


@business_units_bp.get("")
def list_business_units():
    units = business_unit_service.list_business_units()
    return jsonify([unit.to_dict() for unit in units]), 200


@business_units_bp.post("")
def create_business_unit():
    """
    Request body:
    {
        "name": str,
        "business_type": str,
        "address": str (optional),
        "phone": str (optional)
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "name", "business_type")
        unit = business_unit_service.create_business_unit(
            data["name"],
            data["business_type"],
            address=data.get("address"),
            phone=data.get("phone"),
        )
        return jsonify(unit.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create business unit")
        return jsonify({"error": "Internal server error"}), 500


@business_units_bp.get("/<int:business_unit_id>")
def get_business_unit(business_unit_id: int):
    try:
        unit = business_unit_service.get_business_unit(business_unit_id)
        return jsonify(unit.to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
