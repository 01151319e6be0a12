from flask import Blueprint, jsonify, request

from ..errors import LedgerError
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/ledger")
def ledger_report():
    business_unit_id = request.args.get("business_unit_id", type=int)
    if not business_unit_id:
        return jsonify({"error": "business_unit_id is required"}), 400

    try:
        report = reporting_service.ledger_report(
            business_unit_id,
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            type=request.args.get("type"),
        )
        return jsonify(report), 200
    except LedgerError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/profit-and-loss")
def profit_and_loss():
    business_unit_id = request.args.get("business_unit_id", type=int)
    if not business_unit_id:
        return jsonify({"error": "business_unit_id is required"}), 400

    try:
        report = reporting_service.profit_and_loss(
            business_unit_id,
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            top_n=request.args.get("top_n", 10, type=int),
        )
        return jsonify(report), 200
    except LedgerError as exc:
        return jsonify(exc.to_dict()), exc.status_code
