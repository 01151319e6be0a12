# backend/backoffice/routes/jobs.py
"""
Workshop job card API routes.
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import job_service
from ..validation import require_fields


jobs_bp = Blueprint("jobs", __name__, url_prefix="/api/jobs")


@jobs_bp.post("")
def create_job():
    """
    Request body:
    {
        "business_unit_id": int,
        "customer_name": str (required without customer_id),
        "customer_id": int (optional),
        "vehicle_details": str (optional),
        "user_id": int (optional)
    }

    Returns:
        201: Job opened (In Progress)
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "business_unit_id")
        job = job_service.create_job(
            business_unit_id=data["business_unit_id"],
            customer_name=data.get("customer_name"),
            vehicle_details=data.get("vehicle_details"),
            customer_id=data.get("customer_id"),
            user_id=data.get("user_id"),
        )
        return jsonify(job.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create job")
        return jsonify({"error": "Internal server error"}), 500


@jobs_bp.get("")
def list_jobs():
    business_unit_id = request.args.get("business_unit_id", type=int)
    if not business_unit_id:
        return jsonify({"error": "business_unit_id is required"}), 400
    jobs = job_service.list_jobs(business_unit_id, status=request.args.get("status"))
    return jsonify([j.to_dict() for j in jobs]), 200


@jobs_bp.get("/<int:job_id>")
def get_job(job_id: int):
    try:
        return jsonify(job_service.get_job(job_id).to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@jobs_bp.post("/<int:job_id>/items")
def add_job_item(job_id: int):
    """
    Request body:
    {
        "product_id": int,
        "quantity_used": decimal,
        "user_id": int (optional)
    }

    Returns:
        201: Part drawn from stock and expensed
        400: Job is not In Progress, or the product belongs to another unit
        404: Job or product not found
        409: Not enough stock; nothing was recorded
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "product_id", "quantity_used")
        item = job_service.add_job_item(
            job_id,
            product_id=data["product_id"],
            quantity_used=data["quantity_used"],
            user_id=data.get("user_id"),
        )
        return jsonify(item.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add part to job %s", job_id)
        return jsonify({"error": "Internal server error"}), 500


@jobs_bp.post("/<int:job_id>/complete")
def complete_job(job_id: int):
    try:
        return jsonify(job_service.complete_job(job_id).to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to complete job %s", job_id)
        return jsonify({"error": "Internal server error"}), 500
