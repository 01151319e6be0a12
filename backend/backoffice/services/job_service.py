# Overview: Workshop job cards and the parts consumed against them.

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import NotFoundError, StateError
from ..extensions import db
from ..models import BusinessUnit, Job, JobItem
from ..time_utils import utcnow
from ..validation import optional_id, positive_quantity, quantize_money, require_id, require_text
from .concurrency import lock_for_update, unit_of_work
from . import counterparty_service, inventory_service, ledger_service
"""
Job Card Invariants (authoritative)

- A part is drawn from the job's own business unit stock; other units'
  stock reaches the workshop through an internal transfer first.
- Drawing a part decrements on-hand, snapshots the WAC onto the JobItem and
  books one EXPENSE entry (source_reference "job:<id>") for the cost, all
  in one unit of work. A short part leaves the job, the product and the
  log untouched.
- Only In Progress jobs accept parts.
"""


STATUS_IN_PROGRESS = "In Progress"
STATUS_COMPLETED = "Completed"


def create_job(
    *,
    business_unit_id: int,
    customer_name: str | None = None,
    vehicle_details: str | None = None,
    customer_id: int | None = None,
    user_id: int | None = None,
) -> Job:
    """Open a job card. Either ``customer_name`` or ``customer_id`` is required."""
    business_unit_id = require_id(business_unit_id, "business_unit_id")
    customer_id = optional_id(customer_id, "customer_id")
    if customer_id is None:
        customer_name = require_text(customer_name, "customer_name", max_length=128)

    with unit_of_work("create job"):
        if db.session.get(BusinessUnit, business_unit_id) is None:
            raise NotFoundError("Business unit", business_unit_id)
        if customer_id is not None:
            customer = counterparty_service.get_customer(customer_id)
            customer_name = customer_name or customer.name

        job = Job(
            business_unit_id=business_unit_id,
            customer_id=customer_id,
            customer_name=customer_name,
            vehicle_details=vehicle_details,
            status=STATUS_IN_PROGRESS,
            user_id=user_id,
            total_parts_cost=Decimal("0.00"),
        )
        db.session.add(job)
        db.session.flush()
        return job


def get_job(job_id: int, *, lock: bool = False) -> Job:
    query = db.session.query(Job).filter_by(id=job_id)
    if lock:
        query = lock_for_update(query)
    job = query.first()
    if job is None:
        raise NotFoundError("Job", job_id)
    return job


def list_jobs(business_unit_id: int, status: str | None = None) -> list[Job]:
    q = db.session.query(Job).filter_by(business_unit_id=business_unit_id)
    if status:
        q = q.filter(Job.status == status)
    return q.order_by(Job.created_at.desc(), Job.id.desc()).all()


def add_job_item(job_id: int, *, product_id: int, quantity_used, user_id: int | None = None) -> JobItem:
    """
    Draw ``quantity_used`` of a product from stock against a job.

    Raises:
        NotFoundError: unknown job or product.
        StateError: the job is no longer In Progress.
        ValidationError: the product belongs to another business unit.
        InsufficientStockError: less than ``quantity_used`` on hand.
    """
    product_id = require_id(product_id, "product_id")
    quantity = positive_quantity(quantity_used, "quantity_used")

    with unit_of_work("job part"):
        job = get_job(job_id, lock=True)
        if job.status != STATUS_IN_PROGRESS:
            raise StateError(f"Job {job.id} is {job.status}", {"status": job.status})

        product = inventory_service.get_product(product_id, business_unit_id=job.business_unit_id, lock=True)
        cost_at_use = product.cost_price
        cost = inventory_service.consume(product, quantity)

        item = JobItem(
            job_id=job.id,
            product_id=product.id,
            quantity_used=quantity,
            cost_at_time_of_use=cost_at_use,
            line_cost=cost,
            user_id=user_id,
        )
        db.session.add(item)
        job.total_parts_cost = quantize_money(Decimal(job.total_parts_cost) + cost)

        if cost > 0:
            ledger_service.append_transaction(
                business_unit_id=job.business_unit_id,
                amount=cost,
                type=ledger_service.TYPE_EXPENSE,
                description=f"Parts for Job #{job.id}",
                source_reference=f"job:{job.id}",
                customer_id=job.customer_id,
                user_id=user_id,
            )
        db.session.flush()

        current_app.logger.info("Job %s used %s x %s at cost %s", job.id, quantity, product.name, cost)
        return item


def complete_job(job_id: int) -> Job:
    with unit_of_work("complete job"):
        job = get_job(job_id, lock=True)
        if job.status != STATUS_IN_PROGRESS:
            raise StateError(f"Job {job.id} is {job.status}", {"status": job.status})
        job.status = STATUS_COMPLETED
        job.completed_at = utcnow()
        return job
