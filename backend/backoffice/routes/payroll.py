# backend/backoffice/routes/payroll.py
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import payroll_service
from ..validation import require_fields


payroll_bp = Blueprint("payroll", __name__, url_prefix="/api/payroll")


@payroll_bp.get("/employees")
def list_employees():
    employees = payroll_service.list_employees(request.args.get("business_unit_id", type=int))
    return jsonify([e.to_dict() for e in employees]), 200


@payroll_bp.post("/employees")
def create_employee():
    data = request.get_json(silent=True)
    try:
        require_fields(data, "business_unit_id", "name", "pay_type", "pay_rate")
        employee = payroll_service.create_employee(
            business_unit_id=data["business_unit_id"],
            name=data["name"],
            pay_type=data["pay_type"],
            pay_rate=data["pay_rate"],
            user_id=data.get("user_id"),
        )
        return jsonify(employee.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create employee")
        return jsonify({"error": "Internal server error"}), 500


@payroll_bp.post("/employees/<int:employee_id>/loans")
def issue_loan(employee_id: int):
    data = request.get_json(silent=True)
    try:
        require_fields(data, "principal_amount")
        loan = payroll_service.issue_loan(employee_id=employee_id, principal_amount=data["principal_amount"])
        return jsonify(loan.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to issue loan to employee %s", employee_id)
        return jsonify({"error": "Internal server error"}), 500


@payroll_bp.post("/runs")
def run_payroll():
    """
    Request body:
    {
        "pay_period_start": "YYYY-MM-DD",
        "pay_period_end": "YYYY-MM-DD",
        "hours_worked": {"<employee_id>": decimal} (hourly staff),
        "loan_repayment_amount": decimal (optional, per employee with a loan),
        "loan_deductions": {"<employee_id>": decimal} (optional overrides),
        "business_unit_id": int (optional),
        "user_id": int (optional)
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "pay_period_start", "pay_period_end")
        run = payroll_service.run_payroll(
            pay_period_start=data["pay_period_start"],
            pay_period_end=data["pay_period_end"],
            hours_worked=data.get("hours_worked"),
            loan_repayment_amount=data.get("loan_repayment_amount", 0),
            loan_deductions=data.get("loan_deductions"),
            business_unit_id=data.get("business_unit_id"),
            user_id=data.get("user_id"),
        )
        return jsonify(run.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Payroll run failed")
        return jsonify({"error": "Internal server error"}), 500


@payroll_bp.get("/runs/<int:run_id>")
def get_payroll_run(run_id: int):
    try:
        return jsonify(payroll_service.get_payroll_run(run_id).to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
