"""
Workflow tasks as an explicit state machine.

STATES: OPEN, IN_PROGRESS, COMPLETED, CANCELLED

TRIGGERS:
- start:    OPEN -> IN_PROGRESS
- complete: OPEN | IN_PROGRESS -> COMPLETED
- cancel:   OPEN | IN_PROGRESS -> CANCELLED

Follow-up work is declared per task type in FOLLOW_UPS rather than keyed off
ad hoc string checks: completing a PICKING task spawns a DELIVERY task for
the same source document.
"""
from __future__ import annotations

from ..errors import NotFoundError, StateError, ValidationError
from ..extensions import db
from ..models import BusinessUnit, Task
from ..time_utils import utcnow
from ..validation import optional_id, require_id, require_text
from .concurrency import lock_for_update, unit_of_work


STATUS_OPEN = "OPEN"
STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELLED = "CANCELLED"

TYPE_MANUAL = "MANUAL"
TYPE_PICKING = "PICKING"
TYPE_DELIVERY = "DELIVERY"
TASK_TYPES = (TYPE_MANUAL, TYPE_PICKING, TYPE_DELIVERY)

TRANSITIONS = {
    "start": {STATUS_OPEN: STATUS_IN_PROGRESS},
    "complete": {STATUS_OPEN: STATUS_COMPLETED, STATUS_IN_PROGRESS: STATUS_COMPLETED},
    "cancel": {STATUS_OPEN: STATUS_CANCELLED, STATUS_IN_PROGRESS: STATUS_CANCELLED},
}

# task_type completed -> task_type spawned
FOLLOW_UPS = {
    TYPE_PICKING: TYPE_DELIVERY,
}


def create_task(
    *,
    business_unit_id: int,
    title: str,
    description: str | None = None,
    task_type: str = TYPE_MANUAL,
    assigned_to_user_id: int | None = None,
    source_type: str | None = None,
    source_id: int | None = None,
) -> Task:
    task_type = (task_type or TYPE_MANUAL).upper()
    if task_type not in TASK_TYPES:
        raise ValidationError(f"task_type must be one of {', '.join(TASK_TYPES)}")
    title = require_text(title, "title")
    business_unit_id = require_id(business_unit_id, "business_unit_id")

    with unit_of_work("create task"):
        if db.session.get(BusinessUnit, business_unit_id) is None:
            raise NotFoundError("Business unit", business_unit_id)
        task = Task(
            business_unit_id=business_unit_id,
            task_type=task_type,
            title=title,
            description=description,
            assigned_to_user_id=optional_id(assigned_to_user_id, "assigned_to_user_id"),
            status=STATUS_OPEN,
            source_type=source_type,
            source_id=optional_id(source_id, "source_id"),
        )
        db.session.add(task)
        db.session.flush()
        return task


def get_task(task_id: int, *, lock: bool = False) -> Task:
    query = db.session.query(Task).filter_by(id=task_id)
    if lock:
        query = lock_for_update(query)
    task = query.first()
    if task is None:
        raise NotFoundError("Task", task_id)
    return task


def _spawn_follow_up(task: Task, assignee_id: int | None) -> Task | None:
    next_type = FOLLOW_UPS.get(task.task_type)
    if next_type is None:
        return None
    reference = f"{task.source_type} #{task.source_id}" if task.source_type else f"task #{task.id}"
    follow_up = Task(
        business_unit_id=task.business_unit_id,
        task_type=next_type,
        title=f"Deliver {reference}",
        description=f"Deliver all items for {reference}. Obtain proof of delivery.",
        assigned_to_user_id=assignee_id,
        status=STATUS_OPEN,
        source_type=task.source_type,
        source_id=task.source_id,
        parent_task_id=task.id,
    )
    db.session.add(follow_up)
    db.session.flush()
    return follow_up


def fire(task_id: int, trigger: str, *, assignee_id: int | None = None) -> tuple[Task, Task | None]:
    """
    Apply a named trigger to a task.

    Returns (task, follow_up) where follow_up is the task spawned by
    completion, if any.
    """
    moves = TRANSITIONS.get(trigger)
    if moves is None:
        raise ValidationError(f"Unknown task trigger: {trigger}")

    with unit_of_work(f"task {trigger}"):
        task = get_task(task_id, lock=True)
        target = moves.get(task.status)
        if target is None:
            raise StateError(
                f"Task {task.id} cannot {trigger} from {task.status}",
                {"task_id": task.id, "status": task.status, "trigger": trigger},
            )
        task.status = target

        follow_up = None
        if target == STATUS_COMPLETED:
            task.completed_at = utcnow()
            follow_up = _spawn_follow_up(task, optional_id(assignee_id, "assignee_id"))
        return task, follow_up


def list_tasks(*, business_unit_id: int | None = None, assigned_to_user_id: int | None = None,
               include_closed: bool = False) -> list[Task]:
    q = db.session.query(Task)
    if business_unit_id is not None:
        q = q.filter(Task.business_unit_id == business_unit_id)
    if assigned_to_user_id is not None:
        q = q.filter(Task.assigned_to_user_id == assigned_to_user_id)
    if not include_closed:
        q = q.filter(Task.status.in_((STATUS_OPEN, STATUS_IN_PROGRESS)))
    return q.order_by(Task.created_at, Task.id).all()
