"""
Treasury: per-safe cash balances and the safe-scoped cash ledger.

Every debit/credit writes exactly one CashLedgerEntry in the same
transaction, with debits stored negative and credits positive, so that
for any safe:

    current_balance - opening_balance == SUM(cash_ledger.amount)
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..errors import InsufficientFundsError, NotFoundError, ValidationError
from ..extensions import db
from ..models import CashLedgerEntry, CashSafe
from ..validation import non_negative_cost, positive_amount, quantize_money, require_id, require_text
from .concurrency import lock_for_update, lock_rows, unit_of_work
from . import ledger_service


MOVE_TRANSFER_IN = "TRANSFER_IN"
MOVE_TRANSFER_OUT = "TRANSFER_OUT"
MOVE_SALE_CASH = "SALE_CASH"
MOVE_SALE_CARD = "SALE_CARD"
MOVE_SALE_EFT = "SALE_EFT"
MOVE_PAYOUT = "PAYOUT"
MOVE_CASH_OUT = "CASH_OUT"
MOVE_ACCOUNT_PAYMENT = "ACCOUNT_PAYMENT"

MOVEMENT_TYPES = {
    MOVE_TRANSFER_IN,
    MOVE_TRANSFER_OUT,
    MOVE_SALE_CASH,
    MOVE_SALE_CARD,
    MOVE_SALE_EFT,
    MOVE_PAYOUT,
    MOVE_CASH_OUT,
    MOVE_ACCOUNT_PAYMENT,
}

SALE_MOVEMENTS = {
    "CASH": MOVE_SALE_CASH,
    "CARD": MOVE_SALE_CARD,
    "EFT": MOVE_SALE_EFT,
}


def _create_safe(name: str, opening_balance=0, is_physical_cash: bool = True) -> CashSafe:
    name = require_text(name, "name", max_length=128)
    if db.session.query(CashSafe).filter_by(name=name).first():
        raise ValidationError(f"A safe named {name} already exists")

    opening = quantize_money(non_negative_cost(opening_balance, "opening_balance"))
    safe = CashSafe(
        name=name,
        opening_balance=opening,
        current_balance=opening,
        is_physical_cash=bool(is_physical_cash),
    )
    db.session.add(safe)
    db.session.flush()
    return safe


def get_safe(safe_id: int, *, lock: bool = False) -> CashSafe:
    query = db.session.query(CashSafe).filter_by(id=safe_id)
    if lock:
        query = lock_for_update(query)
    safe = query.first()
    if safe is None:
        raise NotFoundError("Safe", safe_id)
    return safe


def list_safes() -> list[CashSafe]:
    return db.session.query(CashSafe).order_by(CashSafe.name).all()


def _write_entry(safe: CashSafe, movement: str, signed_amount: Decimal, description: str | None,
                 user_id: int | None, links: dict) -> CashLedgerEntry:
    if movement not in MOVEMENT_TYPES:
        raise ValidationError(f"Invalid cash movement type: {movement}")
    entry = CashLedgerEntry(
        safe_id=safe.id,
        type=movement,
        amount=signed_amount,
        balance_after=safe.current_balance,
        description=description[:255] if description else None,
        user_id=user_id,
        sale_id=links.get("sale_id"),
        expense_id=links.get("expense_id"),
        payment_id=links.get("payment_id"),
        source_reference=links.get("source_reference"),
    )
    db.session.add(entry)
    return entry


def debit(
    safe: CashSafe,
    amount,
    movement: str,
    *,
    description: str | None = None,
    user_id: int | None = None,
    **links,
) -> CashLedgerEntry:
    """
    Take ``amount`` out of a locked safe.

    Raises:
        InsufficientFundsError: balance is below ``amount``; nothing is written.
    """
    amount = positive_amount(amount, "amount")
    balance = Decimal(safe.current_balance)
    if balance < amount:
        raise InsufficientFundsError(safe.name, amount, balance)
    safe.current_balance = quantize_money(balance - amount)
    return _write_entry(safe, movement, -amount, description, user_id, links)


def credit(
    safe: CashSafe,
    amount,
    movement: str,
    *,
    description: str | None = None,
    user_id: int | None = None,
    **links,
) -> CashLedgerEntry:
    amount = positive_amount(amount, "amount")
    safe.current_balance = quantize_money(Decimal(safe.current_balance) + amount)
    return _write_entry(safe, movement, amount, description, user_id, links)


def _transfer(
    from_safe_id: int,
    to_safe_id: int,
    amount,
    *,
    business_unit_id: int,
    notes: str | None = None,
    user_id: int | None = None,
):
    """
    Move cash between two safes.

    Both safes are locked in ascending id order. The transfer is recorded
    as one TRANSFER_OUT row, one TRANSFER_IN row and a single neutral
    TRANSFER entry in the master log.
    """
    from_safe_id = require_id(from_safe_id, "from_safe_id")
    to_safe_id = require_id(to_safe_id, "to_safe_id")
    business_unit_id = require_id(business_unit_id, "business_unit_id")
    if from_safe_id == to_safe_id:
        raise ValidationError("Source and destination safes must differ")
    amount = positive_amount(amount, "amount")

    safes = lock_rows(CashSafe, [from_safe_id, to_safe_id])
    for safe_id in (from_safe_id, to_safe_id):
        if safe_id not in safes:
            raise NotFoundError("Safe", safe_id)
    source, destination = safes[from_safe_id], safes[to_safe_id]

    description = f"Cash Transfer: {notes}" if notes else "Cash Transfer"
    out_entry = debit(
        source, amount, MOVE_TRANSFER_OUT,
        description=f"Transfer to {destination.name}", user_id=user_id,
        source_reference="cash_transfer",
    )
    in_entry = credit(
        destination, amount, MOVE_TRANSFER_IN,
        description=f"Transfer from {source.name}", user_id=user_id,
        source_reference="cash_transfer",
    )
    ledger_entry = ledger_service.append_transaction(
        business_unit_id=business_unit_id,
        amount=amount,
        type=ledger_service.TYPE_TRANSFER,
        description=description,
        source_reference="cash_transfer",
        user_id=user_id,
    )
    return out_entry, in_entry, ledger_entry


def list_entries(safe_id: int, limit: int | None = None) -> list[CashLedgerEntry]:
    get_safe(safe_id)
    q = (
        db.session.query(CashLedgerEntry)
        .filter_by(safe_id=safe_id)
        .order_by(CashLedgerEntry.id.desc())
    )
    if limit:
        q = q.limit(limit)
    return q.all()


def conservation_gap(safe: CashSafe) -> Decimal:
    """
    Returns current_balance - opening_balance - SUM(entries); zero when the
    safe's history is complete.
    """
    total = (
        db.session.query(func.coalesce(func.sum(CashLedgerEntry.amount), 0))
        .filter(CashLedgerEntry.safe_id == safe.id)
        .scalar()
    )
    return quantize_money(
        Decimal(safe.current_balance) - Decimal(safe.opening_balance) - Decimal(str(total))
    )


def create_safe(name: str, opening_balance=0, is_physical_cash: bool = True) -> CashSafe:
    with unit_of_work("create safe"):
        return _create_safe(name, opening_balance, is_physical_cash)


def transfer(from_safe_id: int, to_safe_id: int, amount, *, business_unit_id: int,
             notes: str | None = None, user_id: int | None = None):
    with unit_of_work("cash transfer"):
        return _transfer(
            from_safe_id, to_safe_id, amount,
            business_unit_id=business_unit_id, notes=notes, user_id=user_id,
        )
