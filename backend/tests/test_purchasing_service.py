from decimal import Decimal

import pytest

from backoffice.errors import InsufficientFundsError, NotFoundError, StateError, ValidationError
from backoffice.models import PurchaseReceipt
from backoffice.services import (
    counterparty_service,
    inventory_service,
    ledger_service,
    purchasing_service,
    treasury_service,
)


@pytest.fixture
def cement(retail, make_product):
    return make_product(retail, "Cement 50kg", price="12.00")


@pytest.fixture
def order(retail, supplier, cement):
    return purchasing_service.create_purchase_order(
        supplier_id=supplier.id,
        business_unit_id=retail.id,
        items=[{"product_id": cement.id, "quantity": 10, "cost_at_order": "5.00"}],
    )


def _entries(order_id):
    return [(e.type, e.amount) for e in ledger_service.find_by_source(f"purchase_order:{order_id}")]


def test_create_order_is_pending_and_moves_nothing(order, cement, supplier):
    assert order.status == "Pending"
    assert order.total_amount == Decimal("50.00")
    assert inventory_service.get_product(cement.id).quantity_on_hand == Decimal("0")
    assert counterparty_service.get_supplier(supplier.id).account_balance == Decimal("0.00")
    assert _entries(order.id) == []


def test_partial_then_full_receipt(db_session, order, cement, supplier):
    receipts = purchasing_service.receive_purchase_order(
        order.id, [{"product_id": cement.id, "quantity_received": 4}]
    )

    assert len(receipts) == 1
    assert receipts[0].wac_after == Decimal("5")
    order_row = purchasing_service.get_purchase_order(order.id)
    assert order_row.status == "Partially Received"
    assert order_row.received_value == Decimal("23.00")
    assert inventory_service.get_product(cement.id).quantity_on_hand == Decimal("4")
    assert counterparty_service.get_supplier(supplier.id).account_balance == Decimal("23.00")
    assert sorted(_entries(order.id)) == [
        ("INVENTORY_ACQUIRED", Decimal("20.00")),
        ("VAT_CLAIMABLE", Decimal("3.00")),
    ]

    purchasing_service.receive_purchase_order(order.id)

    order_row = purchasing_service.get_purchase_order(order.id)
    assert order_row.status == "Received"
    assert order_row.received_at is not None
    assert order_row.received_value == Decimal("57.50")
    assert inventory_service.get_product(cement.id).quantity_on_hand == Decimal("10")
    assert counterparty_service.get_supplier(supplier.id).account_balance == Decimal("57.50")
    assert db_session.query(PurchaseReceipt).filter_by(purchase_order_id=order.id).count() == 2


def test_receipt_blends_into_existing_stock(retail, supplier, make_product):
    cement = make_product(retail, "Cement 50kg", qty=10, cost="5")
    order = purchasing_service.create_purchase_order(
        supplier_id=supplier.id,
        business_unit_id=retail.id,
        items=[{"product_id": cement.id, "quantity": 10, "cost_at_order": "7.00"}],
    )

    purchasing_service.receive_purchase_order(order.id)

    cement = inventory_service.get_product(cement.id)
    assert cement.quantity_on_hand == Decimal("20")
    assert cement.cost_price == Decimal("6")


def test_receiving_a_received_order_is_a_state_error(order):
    purchasing_service.receive_purchase_order(order.id)
    with pytest.raises(StateError):
        purchasing_service.receive_purchase_order(order.id)


def test_over_receipt_is_rejected(order, cement):
    with pytest.raises(ValidationError):
        purchasing_service.receive_purchase_order(order.id, [{"product_id": cement.id, "quantity_received": 11}])
    assert inventory_service.get_product(cement.id).quantity_on_hand == Decimal("0")
    assert purchasing_service.get_purchase_order(order.id).status == "Pending"


def test_product_not_on_order_is_not_found(retail, order, make_product):
    stray = make_product(retail, "Stray Product")
    with pytest.raises(NotFoundError):
        purchasing_service.receive_purchase_order(order.id, [{"product_id": stray.id, "quantity_received": 1}])


# =============================================================================
# SUPPLIER PAYMENTS
# =============================================================================

def test_supplier_payment_reduces_payable(db_session, order, supplier, safe_a):
    purchasing_service.receive_purchase_order(order.id)

    payment = counterparty_service.pay_supplier(supplier_id=supplier.id, safe_id=safe_a.id, amount="30")

    assert treasury_service.get_safe(safe_a.id).current_balance == Decimal("970.00")
    assert counterparty_service.get_supplier(supplier.id).account_balance == Decimal("27.50")
    assert purchasing_service.get_purchase_order(order.id).amount_paid == Decimal("30.00")

    entries = ledger_service.find_by_source(f"supplier_payment:{payment.id}")
    assert [(e.type, e.amount, e.supplier_id) for e in entries] == [("TRANSFER", Decimal("30.00"), supplier.id)]


def test_supplier_overpayment_is_rejected(order, supplier, safe_b):
    purchasing_service.receive_purchase_order(order.id)
    counterparty_service.pay_supplier(supplier_id=supplier.id, safe_id=safe_b.id, amount="57.50")
    assert purchasing_service.get_purchase_order(order.id).amount_paid == Decimal("57.50")

    with pytest.raises(ValidationError):
        counterparty_service.pay_supplier(supplier_id=supplier.id, safe_id=safe_b.id, amount="1")


def test_supplier_payment_with_empty_safe(retail, supplier, make_product):
    cement = make_product(retail, "Cement 50kg")
    big = purchasing_service.create_purchase_order(
        supplier_id=supplier.id,
        business_unit_id=retail.id,
        items=[{"product_id": cement.id, "quantity": 100, "cost_at_order": "50.00"}],
    )
    purchasing_service.receive_purchase_order(big.id)
    empty = treasury_service.create_safe("Petty Cash")

    with pytest.raises(InsufficientFundsError):
        counterparty_service.pay_supplier(supplier_id=supplier.id, safe_id=empty.id, amount="100")
    assert counterparty_service.get_supplier(supplier.id).account_balance == Decimal("5750.00")


def test_receipt_and_supplier_payment_lock_supplier_before_orders(monkeypatch, order, supplier, safe_a):
    from backoffice.services import concurrency

    locked = []

    def recording_lock(query):
        locked.append(query.column_descriptions[0]["entity"].__name__)
        return query.with_for_update()

    for module in (concurrency, counterparty_service, inventory_service, purchasing_service, treasury_service):
        monkeypatch.setattr(module, "lock_for_update", recording_lock)

    purchasing_service.receive_purchase_order(order.id)
    assert locked == ["Supplier", "PurchaseOrder", "Product"]

    locked.clear()
    counterparty_service.pay_supplier(supplier_id=supplier.id, safe_id=safe_a.id, amount="10")
    assert locked == ["Supplier", "CashSafe", "PurchaseOrder"]
