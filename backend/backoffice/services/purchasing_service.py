# Overview: Purchase orders and goods receipts.

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import NotFoundError, StateError, ValidationError
from ..extensions import db
from ..models import PurchaseOrder, PurchaseOrderItem, PurchaseReceipt
from ..time_utils import utcnow
from ..validation import (
    non_negative_cost,
    optional_id,
    positive_quantity,
    quantize_money,
    quantize_quantity,
    require_id,
    require_lines,
)
from .concurrency import lock_for_update, unit_of_work
from . import counterparty_service, inventory_service, ledger_service
"""
Purchasing Invariants (authoritative)

Lifecycle:
- Pending -> Partially Received -> Received (or Pending -> Received in one go).
- A Received order accepts no further receipts (StateError).

Receipts:
- quantity_received on a line never exceeds the ordered quantity.
- Each received line is absorbed into the product's WAC at cost_at_order.
- The supplier payable grows by the VAT-inclusive value of the receipt.
- The master log gets one INVENTORY_ACQUIRED entry for the exclusive value
  and one VAT_CLAIMABLE entry for the tax portion, per receipt event.
"""


STATUS_PENDING = "Pending"
STATUS_PARTIALLY_RECEIVED = "Partially Received"
STATUS_RECEIVED = "Received"


def create_purchase_order(
    *,
    supplier_id: int,
    business_unit_id: int,
    items: list[dict],
    user_id: int | None = None,
) -> PurchaseOrder:
    """Each item: {"product_id", "quantity", "cost_at_order"} (cost VAT-exclusive)."""
    parsed = []
    for item in require_lines(items, "items"):
        parsed.append((
            require_id(item.get("product_id"), "product_id"),
            positive_quantity(item.get("quantity"), "quantity"),
            non_negative_cost(item.get("cost_at_order"), "cost_at_order"),
        ))
    business_unit_id = require_id(business_unit_id, "business_unit_id")

    with unit_of_work("create purchase order"):
        supplier = counterparty_service.get_supplier(supplier_id)
        for product_id, _, _ in parsed:
            inventory_service.get_product(product_id, business_unit_id=business_unit_id)

        order = PurchaseOrder(
            supplier_id=supplier.id,
            business_unit_id=business_unit_id,
            user_id=user_id,
            total_amount=quantize_money(sum((qty * cost for _, qty, cost in parsed), Decimal("0"))),
            status=STATUS_PENDING,
        )
        db.session.add(order)
        db.session.flush()
        for product_id, qty, cost in parsed:
            db.session.add(PurchaseOrderItem(
                purchase_order_id=order.id,
                product_id=product_id,
                quantity=qty,
                cost_at_order=cost,
                quantity_received=Decimal("0"),
            ))
        db.session.flush()
        return order


def get_purchase_order(purchase_order_id: int, *, lock: bool = False) -> PurchaseOrder:
    query = db.session.query(PurchaseOrder).filter_by(id=purchase_order_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise NotFoundError("Purchase order", purchase_order_id)
    return order


def list_purchase_orders(business_unit_id: int, status: str | None = None) -> list[PurchaseOrder]:
    q = db.session.query(PurchaseOrder).filter_by(business_unit_id=business_unit_id)
    if status:
        q = q.filter(PurchaseOrder.status == status)
    return q.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc()).all()


def list_receipts(purchase_order_id: int) -> list[PurchaseReceipt]:
    get_purchase_order(purchase_order_id)
    return (
        db.session.query(PurchaseReceipt)
        .filter_by(purchase_order_id=purchase_order_id)
        .order_by(PurchaseReceipt.id)
        .all()
    )


def _resolve_lines(order: PurchaseOrder, lines) -> list[tuple[PurchaseOrderItem, Decimal]]:
    if lines is None:
        remaining = [
            (item, Decimal(item.quantity) - Decimal(item.quantity_received)) for item in order.items
        ]
        return [(item, qty) for item, qty in remaining if qty > 0]

    by_item_id = {item.id: item for item in order.items}
    by_product_id = {item.product_id: item for item in order.items}
    resolved = []
    for line in require_lines(lines, "lines"):
        item_id = optional_id(line.get("purchase_order_item_id"), "purchase_order_item_id")
        if item_id is not None:
            item = by_item_id.get(item_id)
            if item is None:
                raise NotFoundError(f"Line on purchase order {order.id}", item_id)
        else:
            product_id = require_id(line.get("product_id"), "product_id")
            item = by_product_id.get(product_id)
            if item is None:
                raise NotFoundError(f"Product on purchase order {order.id}", product_id)
        resolved.append((item, positive_quantity(line.get("quantity_received"), "quantity_received")))
    return resolved


def receive_purchase_order(
    purchase_order_id: int,
    lines: list[dict] | None = None,
    *,
    user_id: int | None = None,
) -> list[PurchaseReceipt]:
    """
    Book a delivery against a purchase order.

    ``lines`` is a list of {"product_id" or "purchase_order_item_id",
    "quantity_received"}; when omitted every open quantity is received.

    Raises:
        NotFoundError: unknown order, or a product that is not on the order.
        StateError: the order is already fully received.
        ValidationError: a line would be received beyond its ordered quantity.
    """
    vat_rate = Decimal(str(current_app.config.get("VAT_RATE", "0.15")))

    with unit_of_work("purchase receipt"):
        # Supplier before order, the same order supplier payments take them in.
        supplier_id = get_purchase_order(purchase_order_id).supplier_id
        supplier = counterparty_service.get_supplier(supplier_id, lock=True)
        order = get_purchase_order(purchase_order_id, lock=True)
        if order.status == STATUS_RECEIVED:
            raise StateError(f"Purchase order {order.id} has already been received")

        resolved = _resolve_lines(order, lines)
        if not resolved:
            raise ValidationError(f"Nothing left to receive on purchase order {order.id}")

        products = inventory_service.lock_products([item.product_id for item, _ in resolved])

        receipts = []
        exclusive_value = Decimal("0")
        for item, qty in resolved:
            open_qty = Decimal(item.quantity) - Decimal(item.quantity_received)
            if qty > open_qty:
                raise ValidationError(
                    f"Cannot receive {qty} of line {item.id}; only {open_qty} outstanding",
                    {"purchase_order_item_id": item.id, "outstanding": open_qty, "quantity_received": qty},
                )
            product = products[item.product_id]
            wac_after = inventory_service.receive_stock(product, qty, item.cost_at_order)
            item.quantity_received = quantize_quantity(Decimal(item.quantity_received) + qty)

            receipt = PurchaseReceipt(
                purchase_order_id=order.id,
                purchase_order_item_id=item.id,
                product_id=product.id,
                quantity_received=qty,
                unit_cost=item.cost_at_order,
                wac_after=wac_after,
                user_id=user_id,
            )
            db.session.add(receipt)
            receipts.append(receipt)
            exclusive_value += qty * Decimal(item.cost_at_order)

        exclusive_value = quantize_money(exclusive_value)
        vat_value = quantize_money(exclusive_value * vat_rate)
        inclusive_value = exclusive_value + vat_value

        order.received_value = quantize_money(Decimal(order.received_value) + inclusive_value)
        fully_received = all(Decimal(i.quantity_received) >= Decimal(i.quantity) for i in order.items)
        if fully_received:
            order.status = STATUS_RECEIVED
            order.received_at = utcnow()
        else:
            order.status = STATUS_PARTIALLY_RECEIVED

        if inclusive_value > 0:
            counterparty_service.increase_payable(supplier, inclusive_value)

        reference = f"purchase_order:{order.id}"
        ledger_service.append_transaction(
            business_unit_id=order.business_unit_id,
            amount=exclusive_value,
            type=ledger_service.TYPE_INVENTORY_ACQUIRED,
            description=f"Stock received on PO #{order.id} from {supplier.name}",
            source_reference=reference,
            supplier_id=supplier.id,
            user_id=user_id,
        )
        if vat_value > 0:
            ledger_service.append_transaction(
                business_unit_id=order.business_unit_id,
                amount=vat_value,
                type=ledger_service.TYPE_VAT_CLAIMABLE,
                description=f"Input VAT on PO #{order.id}",
                source_reference=reference,
                supplier_id=supplier.id,
                user_id=user_id,
            )
        return receipts
