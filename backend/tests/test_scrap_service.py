from decimal import Decimal

import pytest

from backoffice.errors import InsufficientFundsError, InsufficientStockError, ValidationError
from backoffice.models import CashLedgerEntry, ScrapPurchase
from backoffice.services import inventory_service, ledger_service, scrap_service, treasury_service


@pytest.fixture
def copper(scrapyard, make_product):
    return make_product(scrapyard, "Copper Wire", qty=100, cost="50", unit_type="KG")


def test_buy_pays_out_at_current_wac(db_session, scrapyard, copper, safe_a):
    purchases = scrap_service.buy_scrap(
        business_unit_id=scrapyard.id,
        items=[{"product_id": copper.id, "weight_kg": "10"}],
        safe_id=safe_a.id,
    )

    assert len(purchases) == 1
    assert purchases[0].price_per_kg == Decimal("50")
    assert purchases[0].payout_amount == Decimal("500.00")
    assert treasury_service.get_safe(safe_a.id).current_balance == Decimal("500.00")

    copper = inventory_service.get_product(copper.id)
    assert copper.quantity_on_hand == Decimal("110")
    assert copper.cost_price == Decimal("50")

    reference = f"scrap_purchase:{purchases[0].id}"
    entries = ledger_service.find_by_source(reference)
    assert [(e.type, e.amount) for e in entries] == [("EXPENSE", Decimal("500.00"))]
    cash_row = db_session.query(CashLedgerEntry).one()
    assert (cash_row.type, cash_row.amount, cash_row.source_reference) == ("PAYOUT", Decimal("-500.00"), reference)


def test_buy_several_lines_is_one_payout(scrapyard, copper, safe_a, make_product):
    brass = make_product(scrapyard, "Brass", qty=0, cost="30", unit_type="KG")

    purchases = scrap_service.buy_scrap(
        business_unit_id=scrapyard.id,
        items=[{"product_id": copper.id, "weight_kg": "2"}, {"product_id": brass.id, "weight_kg": "5"}],
        safe_id=safe_a.id,
    )

    ids = ",".join(str(p.id) for p in purchases)
    entries = ledger_service.find_by_source(f"scrap_purchase:{ids}")
    assert [(e.type, e.amount) for e in entries] == [("EXPENSE", Decimal("250.00"))]
    assert treasury_service.get_safe(safe_a.id).current_balance == Decimal("750.00")


def test_buy_beyond_safe_balance_changes_nothing(db_session, scrapyard, copper, safe_a):
    with pytest.raises(InsufficientFundsError):
        scrap_service.buy_scrap(
            business_unit_id=scrapyard.id,
            items=[{"product_id": copper.id, "weight_kg": "25"}],
            safe_id=safe_a.id,
        )

    assert inventory_service.get_product(copper.id).quantity_on_hand == Decimal("100")
    assert treasury_service.get_safe(safe_a.id).current_balance == Decimal("1000.00")
    assert db_session.query(ScrapPurchase).count() == 0


def test_buy_with_zero_wac_is_rejected(scrapyard, safe_a, make_product):
    unpriced = make_product(scrapyard, "Mixed Scrap", unit_type="KG")
    with pytest.raises(ValidationError):
        scrap_service.buy_scrap(
            business_unit_id=scrapyard.id,
            items=[{"product_id": unpriced.id, "weight_kg": "5"}],
            safe_id=safe_a.id,
        )


def test_sell_credits_safe_and_snapshots_cost(db_session, scrapyard, copper, safe_b):
    sale = scrap_service.sell_scrap(
        business_unit_id=scrapyard.id,
        product_id=copper.id,
        weight_kg="20",
        revenue_amount="1500",
        safe_id=safe_b.id,
        invoice_number="INV-88",
    )

    assert sale.cost_at_sale == Decimal("50")
    assert inventory_service.get_product(copper.id).quantity_on_hand == Decimal("80")
    assert treasury_service.get_safe(safe_b.id).current_balance == Decimal("1700.00")

    reference = f"scrap_sale:{sale.id}"
    cash_row = db_session.query(CashLedgerEntry).one()
    assert (cash_row.type, cash_row.source_reference) == ("SALE_EFT", reference)
    entries = ledger_service.find_by_source(reference)
    assert [(e.type, e.amount) for e in entries] == [("INCOME", Decimal("1500.00"))]


def test_sell_more_than_on_hand_is_rejected(scrapyard, copper, safe_b):
    with pytest.raises(InsufficientStockError):
        scrap_service.sell_scrap(
            business_unit_id=scrapyard.id,
            product_id=copper.id,
            weight_kg="100.5",
            revenue_amount="9000",
            safe_id=safe_b.id,
        )
    assert treasury_service.get_safe(safe_b.id).current_balance == Decimal("200.00")
