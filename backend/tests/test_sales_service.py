from decimal import Decimal

import pytest

from backoffice.errors import InsufficientStockError, NotFoundError, ValidationError
from backoffice.models import CashLedgerEntry, LedgerTransaction, Sale, SaleItem
from backoffice.services import (
    counterparty_service,
    inventory_service,
    ledger_service,
    sales_service,
    treasury_service,
)


@pytest.fixture
def no_vat(app, monkeypatch):
    monkeypatch.setitem(app.config, "VAT_RATE", Decimal("0"))


def test_cash_sale_adds_vat_and_credits_safe(db_session, retail, safe_a, make_product):
    drill = make_product(retail, "Drill", qty=10, cost="4", price="10.00")

    sale = sales_service.process_sale(
        business_unit_id=retail.id,
        lines=[{"product_id": drill.id, "quantity": 2}],
        payment_method="cash",
        safe_id=safe_a.id,
    )

    assert sale.total_vat_amount == Decimal("3.00")
    assert sale.total_amount == Decimal("23.00")
    assert sale.amount_paid == Decimal("23.00")
    assert sale.payment_status == "Paid"

    item = sale.items[0]
    assert item.cost_at_sale == Decimal("4")
    assert item.price_at_sale == Decimal("10.00")
    assert item.vat_amount == Decimal("3.00")

    assert inventory_service.get_product(drill.id).quantity_on_hand == Decimal("8")
    assert treasury_service.get_safe(safe_a.id).current_balance == Decimal("1023.00")

    cash_row = db_session.query(CashLedgerEntry).one()
    assert (cash_row.type, cash_row.amount, cash_row.sale_id) == ("SALE_CASH", Decimal("23.00"), sale.id)

    entries = ledger_service.find_by_source(f"sale:{sale.id}")
    assert [(e.type, e.amount) for e in entries] == [("INCOME", Decimal("23.00"))]
    assert entries[0].description == f"Sale #{sale.id} via CASH"


def test_price_override_and_multiple_lines(retail, safe_a, make_product):
    drill = make_product(retail, "Drill", qty=10, cost="4", price="10.00")
    bits = make_product(retail, "Drill Bits", qty=10, cost="1", price="3.00")

    sale = sales_service.process_sale(
        business_unit_id=retail.id,
        lines=[
            {"product_id": drill.id, "quantity": 1, "unit_price": "9.00"},
            {"product_id": bits.id, "quantity": 3},
        ],
        payment_method="CARD",
        safe_id=safe_a.id,
    )

    # (9.00 + 9.00) * 1.15
    assert sale.total_amount == Decimal("20.70")
    assert [i.price_at_sale for i in sale.items] == [Decimal("9.00"), Decimal("3.00")]


def test_on_account_sale_raises_receivable(retail, customer, make_product):
    drill = make_product(retail, "Drill", qty=10, cost="4", price="10.00")

    sale = sales_service.process_sale(
        business_unit_id=retail.id,
        lines=[{"product_id": drill.id, "quantity": 1}],
        payment_method="ON_ACCOUNT",
        customer_id=customer.id,
    )

    assert sale.payment_status == "On Account"
    assert sale.amount_paid == Decimal("0.00")
    assert sale.customer_id == customer.id
    assert counterparty_service.get_customer(customer.id).account_balance == Decimal("11.50")


def test_free_on_account_sale_is_paid(retail, customer, make_product):
    drill = make_product(retail, "Drill", qty=10, cost="4", price="10.00")

    sale = sales_service.process_sale(
        business_unit_id=retail.id,
        lines=[{"product_id": drill.id, "quantity": 1, "unit_price": "0"}],
        payment_method="ON_ACCOUNT",
        customer_id=customer.id,
    )

    assert sale.total_amount == Decimal("0.00")
    assert sale.payment_status == "Paid"
    assert sale.customer_id == customer.id
    assert counterparty_service.open_sales(customer.id) == []
    assert counterparty_service.get_customer(customer.id).account_balance == Decimal("0.00")


def test_unit_id_sent_as_text_is_accepted(retail, safe_a, make_product):
    drill = make_product(retail, "Drill", qty=10, cost="4", price="10.00")

    sale = sales_service.process_sale(
        business_unit_id=str(retail.id),
        lines=[{"product_id": drill.id, "quantity": 1}],
        payment_method="CASH",
        safe_id=safe_a.id,
    )

    assert sale.business_unit_id == retail.id
    assert inventory_service.get_product(drill.id).quantity_on_hand == Decimal("9")


def test_on_account_sale_with_missing_customer_changes_nothing(db_session, retail, make_product):
    drill = make_product(retail, "Drill", qty=10, cost="4", price="10.00")

    with pytest.raises(NotFoundError):
        sales_service.process_sale(
            business_unit_id=retail.id,
            lines=[{"product_id": drill.id, "quantity": 3}],
            payment_method="ON_ACCOUNT",
            customer_id=424242,
        )

    assert inventory_service.get_product(drill.id).quantity_on_hand == Decimal("10")
    assert db_session.query(Sale).count() == 0
    assert db_session.query(SaleItem).count() == 0
    assert db_session.query(LedgerTransaction).count() == 0


def test_on_account_sale_requires_customer(retail, make_product):
    drill = make_product(retail, "Drill", qty=10, cost="4")
    with pytest.raises(ValidationError) as exc:
        sales_service.process_sale(
            business_unit_id=retail.id,
            lines=[{"product_id": drill.id, "quantity": 1}],
            payment_method="ON_ACCOUNT",
        )
    assert exc.value.message == "A customer must be assigned to the sale to process it on account."


def test_paid_sale_requires_safe(retail, make_product):
    drill = make_product(retail, "Drill", qty=10, cost="4")
    with pytest.raises(ValidationError):
        sales_service.process_sale(
            business_unit_id=retail.id,
            lines=[{"product_id": drill.id, "quantity": 1}],
            payment_method="EFT",
        )


def test_short_line_rolls_back_whole_cart(db_session, retail, safe_a, make_product):
    drill = make_product(retail, "Drill", qty=10, cost="4")
    bits = make_product(retail, "Drill Bits", qty=1, cost="1")

    with pytest.raises(InsufficientStockError):
        sales_service.process_sale(
            business_unit_id=retail.id,
            lines=[{"product_id": drill.id, "quantity": 2}, {"product_id": bits.id, "quantity": 2}],
            payment_method="CASH",
            safe_id=safe_a.id,
        )

    assert inventory_service.get_product(drill.id).quantity_on_hand == Decimal("10")
    assert treasury_service.get_safe(safe_a.id).current_balance == Decimal("1000.00")
    assert db_session.query(Sale).count() == 0


def test_cost_at_sale_is_a_snapshot(retail, safe_a, make_product):
    drill = make_product(retail, "Drill", qty=10, cost="4")
    sale = sales_service.process_sale(
        business_unit_id=retail.id,
        lines=[{"product_id": drill.id, "quantity": 1}],
        payment_method="CASH",
        safe_id=safe_a.id,
    )
    inventory_service.edit_product(drill.id, cost_price="9")

    assert sales_service.get_sale(sale.id).items[0].cost_at_sale == Decimal("4")


# =============================================================================
# CUSTOMER PAYMENTS
# =============================================================================

def _on_account(retail, customer, product, price):
    return sales_service.process_sale(
        business_unit_id=retail.id,
        lines=[{"product_id": product.id, "quantity": 1, "unit_price": price}],
        payment_method="ON_ACCOUNT",
        customer_id=customer.id,
    )


def test_partial_then_full_payment(no_vat, db_session, retail, customer, safe_a, make_product):
    drill = make_product(retail, "Drill", qty=10, cost="4")
    sale = _on_account(retail, customer, drill, "100.00")

    payment = counterparty_service.apply_payment(customer_id=customer.id, safe_id=safe_a.id, amount="50")

    sale = sales_service.get_sale(sale.id)
    assert sale.payment_status == "Partially Paid"
    assert sale.amount_paid == Decimal("50.00")
    assert counterparty_service.get_customer(customer.id).account_balance == Decimal("50.00")
    assert treasury_service.get_safe(safe_a.id).current_balance == Decimal("1050.00")

    cash_row = db_session.query(CashLedgerEntry).one()
    assert (cash_row.type, cash_row.payment_id) == ("ACCOUNT_PAYMENT", payment.id)
    income = ledger_service.find_by_source(f"customer_payment:{payment.id}")
    assert [(e.type, e.amount, e.customer_id) for e in income] == [("INCOME", Decimal("50.00"), customer.id)]

    counterparty_service.apply_payment(customer_id=customer.id, safe_id=safe_a.id, amount="50")
    assert sales_service.get_sale(sale.id).payment_status == "Paid"
    assert counterparty_service.get_customer(customer.id).account_balance == Decimal("0.00")


def test_payment_settles_oldest_sales_first(no_vat, retail, customer, safe_a, make_product):
    drill = make_product(retail, "Drill", qty=10, cost="4")
    first = _on_account(retail, customer, drill, "30.00")
    second = _on_account(retail, customer, drill, "70.00")

    counterparty_service.apply_payment(customer_id=customer.id, safe_id=safe_a.id, amount="40")

    assert sales_service.get_sale(first.id).payment_status == "Paid"
    second = sales_service.get_sale(second.id)
    assert second.payment_status == "Partially Paid"
    assert second.amount_paid == Decimal("10.00")
    assert counterparty_service.get_customer(customer.id).account_balance == Decimal("60.00")


def test_explicit_allocations(no_vat, retail, customer, safe_a, make_product):
    drill = make_product(retail, "Drill", qty=10, cost="4")
    first = _on_account(retail, customer, drill, "30.00")
    second = _on_account(retail, customer, drill, "70.00")

    counterparty_service.apply_payment(
        customer_id=customer.id,
        safe_id=safe_a.id,
        amount="70",
        allocations=[{"sale_id": second.id, "amount_applied": "70"}],
    )

    assert sales_service.get_sale(first.id).payment_status == "On Account"
    assert sales_service.get_sale(second.id).payment_status == "Paid"
    assert counterparty_service.get_customer(customer.id).account_balance == Decimal("30.00")


def test_over_allocation_and_overpayment_are_rejected(no_vat, db_session, retail, customer, safe_a, make_product):
    drill = make_product(retail, "Drill", qty=10, cost="4")
    sale = _on_account(retail, customer, drill, "30.00")

    with pytest.raises(ValidationError):
        counterparty_service.apply_payment(
            customer_id=customer.id, safe_id=safe_a.id, amount="40",
            allocations=[{"sale_id": sale.id, "amount_applied": "40"}],
        )
    with pytest.raises(ValidationError):
        counterparty_service.apply_payment(customer_id=customer.id, safe_id=safe_a.id, amount="31")
    with pytest.raises(ValidationError):
        counterparty_service.apply_payment(
            customer_id=customer.id, safe_id=safe_a.id, amount="20",
            allocations=[{"sale_id": sale.id, "amount_applied": "10"}],
        )

    assert counterparty_service.get_customer(customer.id).account_balance == Decimal("30.00")
    assert treasury_service.get_safe(safe_a.id).current_balance == Decimal("1000.00")
    assert db_session.query(CashLedgerEntry).count() == 0
