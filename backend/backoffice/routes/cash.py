# backend/backoffice/routes/cash.py
"""
Safes, inter-safe transfers and manual expenses.
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import expense_service, reporting_service, treasury_service
from ..validation import require_fields


cash_bp = Blueprint("cash", __name__, url_prefix="/api/cash")


@cash_bp.get("/safes")
def list_safes():
    return jsonify([safe.to_dict() for safe in treasury_service.list_safes()]), 200


@cash_bp.post("/safes")
def create_safe():
    """
    Request body:
    {
        "name": str,
        "opening_balance": decimal (optional, default 0),
        "is_physical_cash": bool (optional, default true)
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "name")
        safe = treasury_service.create_safe(
            data["name"],
            opening_balance=data.get("opening_balance", 0),
            is_physical_cash=bool(data.get("is_physical_cash", True)),
        )
        return jsonify(safe.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create safe")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/safes/<int:safe_id>")
def get_safe_balance(safe_id: int):
    try:
        return jsonify(reporting_service.safe_balance(safe_id)), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@cash_bp.get("/safes/<int:safe_id>/entries")
def list_safe_entries(safe_id: int):
    limit = request.args.get("limit", type=int)
    try:
        entries = treasury_service.list_entries(safe_id, limit=limit)
        return jsonify([entry.to_dict() for entry in entries]), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@cash_bp.post("/transfer")
def transfer_cash():
    """
    Move money between two safes.

    Request body:
    {
        "from_safe_id": int,
        "to_safe_id": int,
        "amount": decimal,
        "business_unit_id": int,
        "notes": str (optional),
        "user_id": int (optional)
    }

    Returns:
        201: Transfer written (both cash entries and the TRANSFER entry)
        400: Invalid request
        404: Unknown safe
        409: Insufficient funds in the source safe
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "from_safe_id", "to_safe_id", "amount", "business_unit_id")
        out_entry, in_entry, ledger_entry = treasury_service.transfer(
            data["from_safe_id"],
            data["to_safe_id"],
            data["amount"],
            business_unit_id=data["business_unit_id"],
            notes=data.get("notes"),
            user_id=data.get("user_id"),
        )
        return jsonify({
            "transfer_out": out_entry.to_dict(),
            "transfer_in": in_entry.to_dict(),
            "ledger_entry": ledger_entry.to_dict(),
        }), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Cash transfer failed")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("/expenses")
def record_expense():
    """
    Request body:
    {
        "business_unit_id": int,
        "safe_id": int,
        "amount": decimal,
        "description": str,
        "user_id": int (optional)
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "business_unit_id", "safe_id", "amount", "description")
        entry = expense_service.record_expense(
            business_unit_id=data["business_unit_id"],
            safe_id=data["safe_id"],
            amount=data["amount"],
            description=data["description"],
            user_id=data.get("user_id"),
        )
        return jsonify(entry.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record expense")
        return jsonify({"error": "Internal server error"}), 500
