from decimal import Decimal

import pytest

from backoffice.errors import InsufficientStockError, StateError, ValidationError
from backoffice.models import JobItem, LedgerTransaction
from backoffice.services import inventory_service, job_service, ledger_service
from backoffice.services.concurrency import unit_of_work


@pytest.fixture
def filler(panel_shop, make_product):
    return make_product(panel_shop, "Body Filler 1L", qty=10, cost="45.5", price="80.00")


@pytest.fixture
def job(panel_shop):
    return job_service.create_job(
        business_unit_id=panel_shop.id,
        customer_name="Sipho Mokoena",
        vehicle_details="Toyota Corolla, CA 123-456",
    )


def test_new_job_is_in_progress(job, panel_shop):
    assert job.status == "In Progress"
    assert job.business_unit_id == panel_shop.id
    assert job.total_parts_cost == Decimal("0.00")
    assert ledger_service.find_by_source(f"job:{job.id}") == []


def test_job_needs_a_customer(panel_shop):
    with pytest.raises(ValidationError):
        job_service.create_job(business_unit_id=panel_shop.id, vehicle_details="VW Polo")


def test_job_for_a_known_customer_takes_their_name(panel_shop, customer):
    job = job_service.create_job(business_unit_id=panel_shop.id, customer_id=customer.id)
    assert job.customer_id == customer.id
    assert job.customer_name == "Thabo Builders"


def test_part_is_drawn_from_stock_and_expensed(db_session, job, filler):
    item = job_service.add_job_item(job.id, product_id=filler.id, quantity_used="2")

    assert item.cost_at_time_of_use == Decimal("45.5")
    assert item.line_cost == Decimal("91.00")
    assert inventory_service.get_product(filler.id).quantity_on_hand == Decimal("8")
    # WAC is untouched by consumption
    assert inventory_service.get_product(filler.id).cost_price == Decimal("45.5")

    entries = ledger_service.find_by_source(f"job:{job.id}")
    assert [(e.type, e.amount, e.business_unit_id) for e in entries] == [
        ("EXPENSE", Decimal("91.00"), job.business_unit_id)
    ]
    assert entries[0].description == f"Parts for Job #{job.id}"
    assert job_service.get_job(job.id).total_parts_cost == Decimal("91.00")


def test_cost_snapshot_survives_later_receipts(job, filler):
    first = job_service.add_job_item(job.id, product_id=filler.id, quantity_used="1")

    with unit_of_work("test receipt"):
        inventory_service.receive_stock(inventory_service.get_product(filler.id, lock=True), "9", "56.5")

    second = job_service.add_job_item(job.id, product_id=filler.id, quantity_used="1")

    assert job_service.get_job(job.id).items[0].cost_at_time_of_use == Decimal("45.5")
    assert first.id != second.id
    assert second.cost_at_time_of_use == Decimal("51")


def test_short_part_changes_nothing(db_session, job, filler):
    with pytest.raises(InsufficientStockError):
        job_service.add_job_item(job.id, product_id=filler.id, quantity_used="11")

    assert inventory_service.get_product(filler.id).quantity_on_hand == Decimal("10")
    assert db_session.query(JobItem).count() == 0
    assert db_session.query(LedgerTransaction).count() == 0
    assert job_service.get_job(job.id).total_parts_cost == Decimal("0.00")


def test_part_from_another_unit_is_rejected(db_session, job, retail, make_product):
    drill = make_product(retail, "Drill", qty=5, cost="4")

    with pytest.raises(ValidationError):
        job_service.add_job_item(job.id, product_id=drill.id, quantity_used="1")

    assert inventory_service.get_product(drill.id).quantity_on_hand == Decimal("5")
    assert db_session.query(JobItem).count() == 0


def test_completed_job_takes_no_parts(job, filler):
    completed = job_service.complete_job(job.id)
    assert completed.status == "Completed"
    assert completed.completed_at is not None

    with pytest.raises(StateError):
        job_service.add_job_item(job.id, product_id=filler.id, quantity_used="1")
    with pytest.raises(StateError):
        job_service.complete_job(job.id)

    assert inventory_service.get_product(filler.id).quantity_on_hand == Decimal("10")
