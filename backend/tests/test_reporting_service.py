from datetime import date, timedelta
from decimal import Decimal

import pytest

from backoffice.errors import NotFoundError, ValidationError
from backoffice.services import expense_service, reporting_service, sales_service


@pytest.fixture
def window():
    today = date.today()
    return (today - timedelta(days=1)).isoformat(), (today + timedelta(days=1)).isoformat()


@pytest.fixture
def trading_day(app, monkeypatch, retail, safe_a, make_product):
    """One 2 x 10.00 cash sale (cost 4) and a 5.00 expense, VAT disabled."""
    monkeypatch.setitem(app.config, "VAT_RATE", Decimal("0"))
    drill = make_product(retail, "Drill", qty=10, cost="4", price="10.00")
    sales_service.process_sale(
        business_unit_id=retail.id,
        lines=[{"product_id": drill.id, "quantity": 2}],
        payment_method="CASH",
        safe_id=safe_a.id,
    )
    expense_service.record_expense(
        business_unit_id=retail.id, safe_id=safe_a.id, amount="5.00", description="Tea and sugar"
    )
    return drill


def test_ledger_report_summarizes_window(retail, trading_day, window):
    report = reporting_service.ledger_report(retail.id, start_date=window[0], end_date=window[1])

    assert [t["type"] for t in report["transactions"]] == ["EXPENSE", "INCOME"]
    assert report["summary"] == {"total_income": "20.00", "total_expense": "5.00"}

    only_income = reporting_service.ledger_report(retail.id, type="INCOME")
    assert len(only_income["transactions"]) == 1


def test_ledger_report_outside_window_is_empty(retail, trading_day):
    report = reporting_service.ledger_report(retail.id, start_date="2001-01-01", end_date="2001-01-31")
    assert report["transactions"] == []
    assert report["summary"] == {"total_income": "0.00", "total_expense": "0.00"}


def test_profit_and_loss(retail, trading_day, window):
    report = reporting_service.profit_and_loss(retail.id, start_date=window[0], end_date=window[1])

    assert report["profit_and_loss"] == {
        "gross_revenue": "20.00",
        "cost_of_goods_sold": "8.00",
        "gross_profit": "12.00",
        "operating_expenses": "5.00",
        "net_profit": "7.00",
    }
    assert report["key_metrics"] == {"accounts_receivable": "0.00", "profit_margin": "35.00"}

    top = report["top_selling_products"]
    assert len(top) == 1
    assert top[0]["product_name"] == "Drill"
    assert Decimal(top[0]["units_sold"]) == 2
    assert top[0]["profit"] == "12.00"


def test_profit_and_loss_requires_dates(retail):
    with pytest.raises(ValidationError):
        reporting_service.profit_and_loss(retail.id, start_date=None, end_date="2024-01-31")
    with pytest.raises(ValidationError):
        reporting_service.profit_and_loss(retail.id, start_date="01/01/2024", end_date="2024-01-31")


def test_point_balances(retail, safe_a, trading_day):
    assert reporting_service.safe_balance(safe_a.id)["current_balance"] == "1015.00"
    position = reporting_service.product_position(trading_day.id)
    assert Decimal(position["quantity_on_hand"]) == 8
    assert position["stock_value"] == "32.00"

    with pytest.raises(NotFoundError):
        reporting_service.customer_balance(999)
