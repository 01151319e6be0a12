# backend/backoffice/routes/tasks.py
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import workflow_service
from ..validation import require_fields


tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


@tasks_bp.get("")
def list_tasks():
    tasks = workflow_service.list_tasks(
        business_unit_id=request.args.get("business_unit_id", type=int),
        assigned_to_user_id=request.args.get("assigned_to_user_id", type=int),
        include_closed=request.args.get("include_closed", "false").lower() == "true",
    )
    return jsonify([t.to_dict() for t in tasks]), 200


@tasks_bp.post("")
def create_task():
    data = request.get_json(silent=True)
    try:
        require_fields(data, "business_unit_id", "title")
        task = workflow_service.create_task(
            business_unit_id=data["business_unit_id"],
            title=data["title"],
            description=data.get("description"),
            task_type=data.get("task_type", workflow_service.TYPE_MANUAL),
            assigned_to_user_id=data.get("assigned_to_user_id"),
            source_type=data.get("source_type"),
            source_id=data.get("source_id"),
        )
        return jsonify(task.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create task")
        return jsonify({"error": "Internal server error"}), 500


@tasks_bp.post("/<int:task_id>/<trigger>")
def fire_trigger(task_id: int, trigger: str):
    """
    Apply start / complete / cancel.

    Request body (optional):
    {
        "assignee_id": int (assignee for any spawned follow-up task)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        task, follow_up = workflow_service.fire(task_id, trigger, assignee_id=data.get("assignee_id"))
        return jsonify({
            "task": task.to_dict(),
            "follow_up": follow_up.to_dict() if follow_up else None,
        }), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Task %s %s failed", task_id, trigger)
        return jsonify({"error": "Internal server error"}), 500
