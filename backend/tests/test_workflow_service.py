import pytest

from backoffice.errors import StateError, ValidationError
from backoffice.services import workflow_service


def test_completing_picking_spawns_delivery(retail):
    picking = workflow_service.create_task(
        business_unit_id=retail.id,
        title="Pick order",
        task_type="picking",
        source_type="sale",
        source_id=42,
    )
    assert picking.status == "OPEN"

    task, follow_up = workflow_service.fire(picking.id, "start")
    assert task.status == "IN_PROGRESS"
    assert follow_up is None

    task, follow_up = workflow_service.fire(picking.id, "complete", assignee_id=7)
    assert task.status == "COMPLETED"
    assert task.completed_at is not None
    assert follow_up.task_type == "DELIVERY"
    assert follow_up.parent_task_id == picking.id
    assert follow_up.assigned_to_user_id == 7
    assert follow_up.title == "Deliver sale #42"

    open_tasks = workflow_service.list_tasks(business_unit_id=retail.id)
    assert [t.id for t in open_tasks] == [follow_up.id]


def test_manual_task_has_no_follow_up(retail):
    task = workflow_service.create_task(business_unit_id=retail.id, title="Sweep yard")
    _, follow_up = workflow_service.fire(task.id, "complete")
    assert follow_up is None


def test_illegal_transitions(retail):
    task = workflow_service.create_task(business_unit_id=retail.id, title="Count screws")
    workflow_service.fire(task.id, "complete")

    with pytest.raises(StateError):
        workflow_service.fire(task.id, "complete")
    with pytest.raises(StateError):
        workflow_service.fire(task.id, "start")
    with pytest.raises(ValidationError):
        workflow_service.fire(task.id, "archive")


def test_cancel_from_open(retail):
    task = workflow_service.create_task(business_unit_id=retail.id, title="Restock")
    task, _ = workflow_service.fire(task.id, "cancel")
    assert task.status == "CANCELLED"
    assert workflow_service.list_tasks(business_unit_id=retail.id) == []
    assert len(workflow_service.list_tasks(business_unit_id=retail.id, include_closed=True)) == 1


def test_unknown_task_type_is_rejected(retail):
    with pytest.raises(ValidationError):
        workflow_service.create_task(business_unit_id=retail.id, title="x", task_type="INSPECTION")
