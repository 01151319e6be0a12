# Overview: Customer receivables and supplier payables.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import (
    BusinessUnit,
    Customer,
    CustomerPayment,
    PurchaseOrder,
    Sale,
    SalePaymentAllocation,
    Supplier,
    SupplierPayment,
    SupplierPaymentAllocation,
)
from ..validation import optional_id, positive_amount, quantize_money, require_id, require_text
from .concurrency import lock_for_update, lock_rows, unit_of_work
from . import ledger_service, treasury_service
"""
Counterparty Balance Invariants (authoritative)

- Customer.account_balance == SUM(total_amount - amount_paid) over the
  customer's sales whose payment_status is not "Paid".
- Supplier.account_balance == SUM(received_value - amount_paid) over the
  supplier's purchase orders.
- Both balances are always recomputed from documents after a change, never
  adjusted by a running increment, so partial and out-of-order allocations
  cannot make them drift.
- Sale.payment_status is "Paid" iff amount_paid >= total_amount; otherwise a
  sale with any payment is "Partially Paid".
"""


STATUS_PAID = "Paid"
STATUS_ON_ACCOUNT = "On Account"
STATUS_PARTIALLY_PAID = "Partially Paid"
OPEN_SALE_STATUSES = (STATUS_ON_ACCOUNT, STATUS_PARTIALLY_PAID)


def _require_unit(business_unit_id) -> int:
    business_unit_id = require_id(business_unit_id, "business_unit_id")
    if db.session.get(BusinessUnit, business_unit_id) is None:
        raise NotFoundError("Business unit", business_unit_id)
    return business_unit_id


# =============================================================================
# CUSTOMERS
# =============================================================================

def _create_customer(*, business_unit_id: int, name: str, phone_number=None, email=None) -> Customer:
    business_unit_id = _require_unit(business_unit_id)
    customer = Customer(
        business_unit_id=business_unit_id,
        name=require_text(name, "name", max_length=128),
        phone_number=phone_number,
        email=email,
        account_balance=Decimal("0.00"),
    )
    db.session.add(customer)
    db.session.flush()
    return customer


def get_customer(customer_id: int, *, lock: bool = False) -> Customer:
    query = db.session.query(Customer).filter_by(id=customer_id)
    if lock:
        query = lock_for_update(query)
    customer = query.first()
    if customer is None:
        raise NotFoundError("Customer", customer_id)
    return customer


def recompute_customer_balance(customer: Customer) -> Decimal:
    db.session.flush()
    outstanding = (
        db.session.query(func.coalesce(func.sum(Sale.total_amount - Sale.amount_paid), 0))
        .filter(Sale.customer_id == customer.id, Sale.payment_status.in_(OPEN_SALE_STATUSES))
        .scalar()
    )
    customer.account_balance = quantize_money(Decimal(str(outstanding)))
    return customer.account_balance


def increase_receivable(customer: Customer, amount) -> Decimal:
    """
    Record that ``customer`` owes ``amount`` more.

    The amount must already be carried by an open sale in the session; the
    balance is recomputed from sales rather than incremented.
    """
    positive_amount(amount, "amount")
    return recompute_customer_balance(customer)


def open_sales(customer_id: int) -> list[Sale]:
    return (
        db.session.query(Sale)
        .filter(Sale.customer_id == customer_id, Sale.payment_status.in_(OPEN_SALE_STATUSES))
        .order_by(Sale.sale_date, Sale.id)
        .all()
    )


def settle_status(sale: Sale) -> None:
    if Decimal(sale.amount_paid) >= Decimal(sale.total_amount):
        sale.payment_status = STATUS_PAID
    elif Decimal(sale.amount_paid) > 0:
        sale.payment_status = STATUS_PARTIALLY_PAID
    else:
        sale.payment_status = STATUS_ON_ACCOUNT


def _plan_oldest_first(open_docs, amount: Decimal, outstanding_of) -> list[tuple[int, Decimal]]:
    remaining = amount
    plan = []
    for doc in open_docs:
        if remaining <= 0:
            break
        applied = min(remaining, outstanding_of(doc))
        if applied > 0:
            plan.append((doc.id, applied))
            remaining -= applied
    if remaining > 0:
        raise ValidationError(
            "Payment exceeds the total outstanding balance",
            {"unallocated": quantize_money(remaining)},
        )
    return plan


def _parse_allocations(allocations, id_field: str, amount: Decimal) -> list[tuple[int, Decimal]]:
    plan = []
    seen = set()
    for alloc in allocations:
        if not isinstance(alloc, dict):
            raise ValidationError("Each allocation must be an object")
        doc_id = require_id(alloc.get(id_field), id_field)
        if doc_id in seen:
            raise ValidationError(f"{id_field} {doc_id} allocated twice")
        seen.add(doc_id)
        plan.append((doc_id, positive_amount(alloc.get("amount_applied"), "amount_applied")))
    allocated = sum((a for _, a in plan), Decimal("0"))
    if allocated != amount:
        raise ValidationError(
            "Allocations must add up to the payment amount",
            {"amount": amount, "allocated": allocated},
        )
    return plan


def _apply_payment(
    *,
    customer_id: int,
    safe_id: int,
    amount,
    business_unit_id: int | None = None,
    allocations: list[dict] | None = None,
    notes: str | None = None,
    user_id: int | None = None,
) -> CustomerPayment:
    """
    Receive money from a customer against on-account sales.

    ``allocations`` is a list of {"sale_id", "amount_applied"}; when omitted
    the payment settles the oldest open sales first. Each allocation may not
    exceed that sale's outstanding amount.
    """
    amount = positive_amount(amount, "amount")
    customer = get_customer(customer_id, lock=True)
    unit_id = optional_id(business_unit_id, "business_unit_id") or customer.business_unit_id
    safe = treasury_service.get_safe(safe_id, lock=True)

    if allocations:
        plan = _parse_allocations(allocations, "sale_id", amount)
    else:
        plan = _plan_oldest_first(
            open_sales(customer.id), amount, lambda s: Decimal(s.total_amount) - Decimal(s.amount_paid)
        )

    sales = lock_rows(Sale, [sale_id for sale_id, _ in plan])

    payment = CustomerPayment(
        customer_id=customer.id,
        business_unit_id=unit_id,
        safe_id=safe.id,
        user_id=user_id,
        total_amount=amount,
        notes=notes,
    )
    db.session.add(payment)
    db.session.flush()

    for sale_id, applied in plan:
        sale = sales.get(sale_id)
        if sale is None:
            raise NotFoundError("Sale", sale_id)
        if sale.customer_id != customer.id:
            raise ValidationError(f"Sale {sale_id} does not belong to customer {customer.id}")
        outstanding = Decimal(sale.total_amount) - Decimal(sale.amount_paid)
        if applied > outstanding:
            raise ValidationError(
                f"Allocation to sale {sale_id} exceeds its outstanding amount",
                {"sale_id": sale_id, "outstanding": outstanding, "amount_applied": applied},
            )
        sale.amount_paid = quantize_money(Decimal(sale.amount_paid) + applied)
        settle_status(sale)
        db.session.add(SalePaymentAllocation(sale_id=sale.id, payment_id=payment.id, amount_applied=applied))

    recompute_customer_balance(customer)

    treasury_service.credit(
        safe, amount, treasury_service.MOVE_ACCOUNT_PAYMENT,
        description=f"Account payment from {customer.name}", user_id=user_id,
        payment_id=payment.id,
    )
    ledger_service.append_transaction(
        business_unit_id=unit_id,
        amount=amount,
        type=ledger_service.TYPE_INCOME,
        description=f"Payment received from {customer.name}",
        source_reference=f"customer_payment:{payment.id}",
        customer_id=customer.id,
        user_id=user_id,
    )
    return payment


# =============================================================================
# SUPPLIERS
# =============================================================================

def _create_supplier(*, business_unit_id: int, name: str, contact_person=None, phone_number=None, email=None) -> Supplier:
    business_unit_id = _require_unit(business_unit_id)
    supplier = Supplier(
        business_unit_id=business_unit_id,
        name=require_text(name, "name", max_length=128),
        contact_person=contact_person,
        phone_number=phone_number,
        email=email,
        account_balance=Decimal("0.00"),
    )
    db.session.add(supplier)
    db.session.flush()
    return supplier


def get_supplier(supplier_id: int, *, lock: bool = False) -> Supplier:
    query = db.session.query(Supplier).filter_by(id=supplier_id)
    if lock:
        query = lock_for_update(query)
    supplier = query.first()
    if supplier is None:
        raise NotFoundError("Supplier", supplier_id)
    return supplier


def recompute_supplier_balance(supplier: Supplier) -> Decimal:
    db.session.flush()
    owed = (
        db.session.query(
            func.coalesce(func.sum(PurchaseOrder.received_value - PurchaseOrder.amount_paid), 0)
        )
        .filter(PurchaseOrder.supplier_id == supplier.id)
        .scalar()
    )
    supplier.account_balance = quantize_money(Decimal(str(owed)))
    return supplier.account_balance


def increase_payable(supplier: Supplier, amount) -> Decimal:
    """Mirror of increase_receivable(); the amount lives on a purchase order."""
    positive_amount(amount, "amount")
    return recompute_supplier_balance(supplier)


def _pay_supplier(
    *,
    supplier_id: int,
    safe_id: int,
    amount,
    allocations: list[dict] | None = None,
    notes: str | None = None,
    user_id: int | None = None,
) -> SupplierPayment:
    """
    Pay a supplier out of a safe and allocate the payment to purchase orders.

    Settling a payable moves cash without creating an expense (the goods were
    already booked as INVENTORY_ACQUIRED), so the master log gets a neutral
    TRANSFER entry.
    """
    amount = positive_amount(amount, "amount")
    supplier = get_supplier(supplier_id, lock=True)
    safe = treasury_service.get_safe(safe_id, lock=True)

    if allocations:
        plan = _parse_allocations(allocations, "purchase_order_id", amount)
    else:
        open_orders = (
            db.session.query(PurchaseOrder)
            .filter(
                PurchaseOrder.supplier_id == supplier.id,
                PurchaseOrder.received_value > PurchaseOrder.amount_paid,
            )
            .order_by(PurchaseOrder.order_date, PurchaseOrder.id)
            .all()
        )
        plan = _plan_oldest_first(
            open_orders, amount, lambda po: Decimal(po.received_value) - Decimal(po.amount_paid)
        )

    orders = lock_rows(PurchaseOrder, [po_id for po_id, _ in plan])

    payment = SupplierPayment(
        supplier_id=supplier.id,
        business_unit_id=supplier.business_unit_id,
        safe_id=safe.id,
        user_id=user_id,
        total_amount=amount,
        notes=notes,
    )
    db.session.add(payment)
    db.session.flush()

    for po_id, applied in plan:
        order = orders.get(po_id)
        if order is None:
            raise NotFoundError("Purchase order", po_id)
        if order.supplier_id != supplier.id:
            raise ValidationError(f"Purchase order {po_id} does not belong to supplier {supplier.id}")
        owed = Decimal(order.received_value) - Decimal(order.amount_paid)
        if applied > owed:
            raise ValidationError(
                f"Allocation to purchase order {po_id} exceeds the amount owed on it",
                {"purchase_order_id": po_id, "owed": owed, "amount_applied": applied},
            )
        order.amount_paid = quantize_money(Decimal(order.amount_paid) + applied)
        db.session.add(
            SupplierPaymentAllocation(payment_id=payment.id, purchase_order_id=order.id, amount_applied=applied)
        )

    treasury_service.debit(
        safe, amount, treasury_service.MOVE_PAYOUT,
        description=f"Payment to supplier {supplier.name}", user_id=user_id,
        source_reference=f"supplier_payment:{payment.id}",
    )
    recompute_supplier_balance(supplier)

    ledger_service.append_transaction(
        business_unit_id=supplier.business_unit_id,
        amount=amount,
        type=ledger_service.TYPE_TRANSFER,
        description=f"Supplier payment: {supplier.name}",
        source_reference=f"supplier_payment:{payment.id}",
        supplier_id=supplier.id,
        user_id=user_id,
    )
    return payment


# =============================================================================
# OPERATIONS (each one unit of work)
# =============================================================================

def create_customer(**fields) -> Customer:
    with unit_of_work("create customer"):
        return _create_customer(**fields)


def create_supplier(**fields) -> Supplier:
    with unit_of_work("create supplier"):
        return _create_supplier(**fields)


def apply_payment(**kwargs) -> CustomerPayment:
    with unit_of_work("customer payment"):
        return _apply_payment(**kwargs)


def pay_supplier(**kwargs) -> SupplierPayment:
    with unit_of_work("supplier payment"):
        return _pay_supplier(**kwargs)
