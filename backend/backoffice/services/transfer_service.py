"""
Internal stock transfers between business units.

LIFECYCLE:
1. PENDING: requested by the receiving unit
2. COMPLETED: fulfilled by the providing unit (stock moves, entries written)
3. CANCELLED: withdrawn before fulfilment

COMPLETED and CANCELLED are terminal. Any other transition raises StateError.

Financial treatment on fulfilment:
- Units of different business_type invoice each other at the provider's WAC:
  INTERNAL_EXPENSE for the requester and INTERNAL_INCOME for the provider,
  equal in magnitude.
- Units of the same business_type move stock only; no ledger entries.
"""
from __future__ import annotations

from decimal import Decimal

from ..errors import NotFoundError, StateError, ValidationError
from ..extensions import db
from ..models import BusinessUnit, StockTransfer
from ..time_utils import utcnow
from ..validation import optional_id, positive_quantity, quantize_money, require_id
from .concurrency import lock_for_update, unit_of_work
from . import inventory_service, ledger_service


STATUS_PENDING = "PENDING"
STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELLED = "CANCELLED"

TRANSITIONS = {
    (STATUS_PENDING, STATUS_COMPLETED),
    (STATUS_PENDING, STATUS_CANCELLED),
}


def can_transition(from_status: str, to_status: str) -> bool:
    return (from_status, to_status) in TRANSITIONS


def _require_transition(transfer: StockTransfer, to_status: str) -> None:
    if not can_transition(transfer.status, to_status):
        raise StateError(
            f"Stock transfer {transfer.id} cannot move from {transfer.status} to {to_status}",
            {"transfer_id": transfer.id, "status": transfer.status, "requested": to_status},
        )


def _get_unit(business_unit_id: int) -> BusinessUnit:
    unit = db.session.get(BusinessUnit, business_unit_id)
    if unit is None:
        raise NotFoundError("Business unit", business_unit_id)
    return unit


def request_transfer(
    *,
    requesting_unit_id: int,
    providing_unit_id: int,
    product_id: int,
    quantity_requested,
    destination_product_id: int | None = None,
    user_id: int | None = None,
) -> StockTransfer:
    """Create a PENDING transfer request. No stock moves until fulfilment."""
    requesting_unit_id = require_id(requesting_unit_id, "requesting_unit_id")
    providing_unit_id = require_id(providing_unit_id, "providing_unit_id")
    product_id = require_id(product_id, "product_id")
    if requesting_unit_id == providing_unit_id:
        raise ValidationError("A business unit cannot request stock from itself")
    quantity = positive_quantity(quantity_requested, "quantity_requested")
    destination_product_id = optional_id(destination_product_id, "destination_product_id")

    with unit_of_work("request stock transfer"):
        _get_unit(requesting_unit_id)
        _get_unit(providing_unit_id)
        inventory_service.get_product(product_id, business_unit_id=providing_unit_id)
        if destination_product_id is not None:
            inventory_service.get_product(destination_product_id, business_unit_id=requesting_unit_id)

        transfer = StockTransfer(
            requesting_unit_id=requesting_unit_id,
            providing_unit_id=providing_unit_id,
            product_id=product_id,
            destination_product_id=destination_product_id,
            quantity_requested=quantity,
            status=STATUS_PENDING,
            requesting_user_id=user_id,
        )
        db.session.add(transfer)
        db.session.flush()
        return transfer


def get_transfer(transfer_id: int, *, lock: bool = False) -> StockTransfer:
    query = db.session.query(StockTransfer).filter_by(id=transfer_id)
    if lock:
        query = lock_for_update(query)
    transfer = query.first()
    if transfer is None:
        raise NotFoundError("Stock transfer", transfer_id)
    return transfer


def fulfil_transfer(transfer_id: int, *, user_id: int | None = None) -> StockTransfer:
    """
    PENDING -> COMPLETED.

    Raises:
        StateError: the transfer is not PENDING.
        InsufficientStockError: the provider does not hold the quantity.
    """
    with unit_of_work("fulfil stock transfer"):
        transfer = get_transfer(transfer_id, lock=True)
        _require_transition(transfer, STATUS_COMPLETED)

        product_ids = [transfer.product_id]
        if transfer.destination_product_id is not None:
            product_ids.append(transfer.destination_product_id)
        products = inventory_service.lock_products(product_ids)
        source = products[transfer.product_id]

        quantity = Decimal(transfer.quantity_requested)
        unit_cost = Decimal(source.cost_price)
        inventory_service.consume(source, quantity)
        if transfer.destination_product_id is not None:
            inventory_service.receive_stock(products[transfer.destination_product_id], quantity, unit_cost)

        total_value = quantize_money(quantity * unit_cost)
        transfer.unit_cost = unit_cost
        transfer.total_value = total_value
        transfer.status = STATUS_COMPLETED
        transfer.approving_user_id = user_id
        transfer.completed_at = utcnow()

        requester = _get_unit(transfer.requesting_unit_id)
        provider = _get_unit(transfer.providing_unit_id)
        if requester.business_type != provider.business_type:
            description = f"Internal transfer #{transfer.id}: {quantity} x {source.name}"
            ledger_service.append_transaction(
                business_unit_id=requester.id,
                amount=total_value,
                type=ledger_service.TYPE_INTERNAL_EXPENSE,
                description=description,
                source_reference=f"transfer:{transfer.id}",
                user_id=user_id,
            )
            ledger_service.append_transaction(
                business_unit_id=provider.id,
                amount=total_value,
                type=ledger_service.TYPE_INTERNAL_INCOME,
                description=description,
                source_reference=f"transfer:{transfer.id}",
                user_id=user_id,
            )
        return transfer


def cancel_transfer(transfer_id: int, *, reason: str | None = None, user_id: int | None = None) -> StockTransfer:
    """PENDING -> CANCELLED. Nothing moves."""
    with unit_of_work("cancel stock transfer"):
        transfer = get_transfer(transfer_id, lock=True)
        _require_transition(transfer, STATUS_CANCELLED)
        transfer.status = STATUS_CANCELLED
        transfer.cancelled_at = utcnow()
        transfer.cancellation_reason = reason
        transfer.approving_user_id = user_id
        return transfer


def list_transfers(business_unit_id: int, status: str | None = None) -> list[StockTransfer]:
    q = db.session.query(StockTransfer).filter(
        (StockTransfer.requesting_unit_id == business_unit_id)
        | (StockTransfer.providing_unit_id == business_unit_id)
    )
    if status:
        q = q.filter(StockTransfer.status == status.upper())
    return q.order_by(StockTransfer.created_at.desc(), StockTransfer.id.desc()).all()
