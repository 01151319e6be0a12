from decimal import Decimal

import pytest

from backoffice.errors import InsufficientFundsError, NotFoundError, ValidationError
from backoffice.immutability import ImmutabilityViolationError
from backoffice.models import CashLedgerEntry, LedgerTransaction
from backoffice.services import expense_service, ledger_service, treasury_service


def _entries(db_session, safe):
    return db_session.query(CashLedgerEntry).filter_by(safe_id=safe.id).order_by(CashLedgerEntry.id).all()


def test_transfer_moves_money_and_writes_three_rows(db_session, retail, safe_a, safe_b):
    out_entry, in_entry, ledger_entry = treasury_service.transfer(
        safe_a.id, safe_b.id, "300", business_unit_id=retail.id, notes="float top-up"
    )

    assert treasury_service.get_safe(safe_a.id).current_balance == Decimal("700.00")
    assert treasury_service.get_safe(safe_b.id).current_balance == Decimal("500.00")

    assert [(e.type, e.amount) for e in _entries(db_session, safe_a)] == [("TRANSFER_OUT", Decimal("-300.00"))]
    assert [(e.type, e.amount) for e in _entries(db_session, safe_b)] == [("TRANSFER_IN", Decimal("300.00"))]
    assert out_entry.balance_after == Decimal("700.00")
    assert in_entry.balance_after == Decimal("500.00")

    entries = ledger_service.find_by_source("cash_transfer")
    assert len(entries) == 1
    assert entries[0].type == "TRANSFER"
    assert entries[0].amount == Decimal("300.00")
    assert entries[0].description == "Cash Transfer: float top-up"


def test_transfer_with_insufficient_funds_changes_nothing(db_session, retail, safe_a, safe_b):
    with pytest.raises(InsufficientFundsError) as exc:
        treasury_service.transfer(safe_b.id, safe_a.id, "250", business_unit_id=retail.id)

    assert exc.value.status_code == 409
    assert exc.value.details == {"safe": "Safe B", "required": Decimal("250"), "available": Decimal("200.00")}
    assert treasury_service.get_safe(safe_a.id).current_balance == Decimal("1000.00")
    assert treasury_service.get_safe(safe_b.id).current_balance == Decimal("200.00")
    assert db_session.query(CashLedgerEntry).count() == 0
    assert db_session.query(LedgerTransaction).count() == 0


def test_transfer_rejects_same_safe_and_unknown_safe(retail, safe_a):
    with pytest.raises(ValidationError):
        treasury_service.transfer(safe_a.id, safe_a.id, "10", business_unit_id=retail.id)
    with pytest.raises(NotFoundError):
        treasury_service.transfer(safe_a.id, safe_a.id + 999, "10", business_unit_id=retail.id)


def test_transfer_rejects_non_positive_amount(retail, safe_a, safe_b):
    for amount in ("0", "-5", "abc"):
        with pytest.raises(ValidationError):
            treasury_service.transfer(safe_a.id, safe_b.id, amount, business_unit_id=retail.id)


def test_expense_debits_safe_and_links_entry(db_session, retail, safe_a):
    entry = expense_service.record_expense(
        business_unit_id=retail.id, safe_id=safe_a.id, amount="45.50", description="Electricity"
    )

    assert entry.type == "EXPENSE"
    assert entry.amount == Decimal("45.50")
    assert entry.source_reference == "manual_expense"
    assert treasury_service.get_safe(safe_a.id).current_balance == Decimal("954.50")

    cash_rows = _entries(db_session, safe_a)
    assert [(e.type, e.amount, e.expense_id) for e in cash_rows] == [("CASH_OUT", Decimal("-45.50"), entry.id)]


def test_expense_beyond_balance_is_rejected(db_session, retail, safe_b):
    with pytest.raises(InsufficientFundsError):
        expense_service.record_expense(
            business_unit_id=retail.id, safe_id=safe_b.id, amount="200.01", description="Rent"
        )
    assert db_session.query(LedgerTransaction).count() == 0


def test_conservation_holds_after_mixed_movements(retail, safe_a, safe_b):
    treasury_service.transfer(safe_a.id, safe_b.id, "120.10", business_unit_id=retail.id)
    treasury_service.transfer(safe_b.id, safe_a.id, "20.05", business_unit_id=retail.id)
    expense_service.record_expense(business_unit_id=retail.id, safe_id=safe_b.id, amount="99.99", description="Fuel")

    for safe in treasury_service.list_safes():
        assert treasury_service.conservation_gap(safe) == Decimal("0.00")


def test_opening_balance_is_not_a_ledger_row(db_session, safe_a):
    assert _entries(db_session, safe_a) == []
    assert treasury_service.conservation_gap(safe_a) == Decimal("0.00")


def test_duplicate_safe_name_is_rejected(safe_a):
    with pytest.raises(ValidationError):
        treasury_service.create_safe("Safe A")


# =============================================================================
# APPEND-ONLY LEDGERS
# =============================================================================

def test_ledger_entries_cannot_be_updated(db_session, retail, safe_a, safe_b):
    treasury_service.transfer(safe_a.id, safe_b.id, "10", business_unit_id=retail.id)

    entry = db_session.query(LedgerTransaction).one()
    entry.amount = Decimal("1.00")
    with pytest.raises(ImmutabilityViolationError):
        db_session.flush()
    db_session.rollback()

    assert db_session.query(LedgerTransaction).one().amount == Decimal("10.00")


def test_cash_entries_cannot_be_deleted(db_session, retail, safe_a, safe_b):
    treasury_service.transfer(safe_a.id, safe_b.id, "10", business_unit_id=retail.id)

    row = db_session.query(CashLedgerEntry).first()
    db_session.delete(row)
    with pytest.raises(ImmutabilityViolationError):
        db_session.flush()
    db_session.rollback()

    assert db_session.query(CashLedgerEntry).count() == 2
