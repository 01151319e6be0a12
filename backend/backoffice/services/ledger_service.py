# Overview: Service-layer operations for the master transaction log.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import BusinessUnit, LedgerTransaction
from ..validation import quantize_money
"""
Master Transaction Log Invariants (authoritative)

- Append-only: no updates/deletes of existing entries.
- No domain/business logic in the log itself; callers decide type and amount.
- Entries are written inside the same DB transaction as the mutations they record.
- amount is stored positive; the type carries direction.
- Date-range reads are half-open: start <= transaction_date < end.
"""


TYPE_INCOME = "INCOME"
TYPE_EXPENSE = "EXPENSE"
TYPE_TRANSFER = "TRANSFER"
TYPE_INTERNAL_INCOME = "INTERNAL_INCOME"
TYPE_INTERNAL_EXPENSE = "INTERNAL_EXPENSE"
TYPE_COGS_ADJUSTMENT = "COGS_ADJUSTMENT"
TYPE_STOCK_GAIN = "STOCK_GAIN"
TYPE_INVENTORY_ACQUIRED = "INVENTORY_ACQUIRED"
TYPE_VAT_CLAIMABLE = "VAT_CLAIMABLE"

VALID_TYPES = {
    TYPE_INCOME,
    TYPE_EXPENSE,
    TYPE_TRANSFER,
    TYPE_INTERNAL_INCOME,
    TYPE_INTERNAL_EXPENSE,
    TYPE_COGS_ADJUSTMENT,
    TYPE_STOCK_GAIN,
    TYPE_INVENTORY_ACQUIRED,
    TYPE_VAT_CLAIMABLE,
}


def append_transaction(
    *,
    business_unit_id: int,
    amount: Decimal,
    type: str,
    description: str,
    source_reference: str,
    customer_id: int | None = None,
    supplier_id: int | None = None,
    user_id: int | None = None,
) -> LedgerTransaction:
    """
    Append one entry to the master log.

    Does not commit; the surrounding unit_of_work owns the transaction.
    """
    if type not in VALID_TYPES:
        raise ValidationError(f"Invalid ledger transaction type: {type}")

    amount = quantize_money(amount)
    if amount < 0:
        raise ValidationError("Ledger amounts are stored positive; the type carries direction")

    if db.session.get(BusinessUnit, business_unit_id) is None:
        raise NotFoundError("Business unit", business_unit_id)

    entry = LedgerTransaction(
        business_unit_id=business_unit_id,
        amount=amount,
        type=type,
        description=description[:255] if description else None,
        source_reference=source_reference,
        customer_id=customer_id,
        supplier_id=supplier_id,
        user_id=user_id,
    )
    db.session.add(entry)
    db.session.flush()  # ensures entry.id is assigned without committing
    return entry


def _filtered(
    business_unit_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
    type: str | None = None,
):
    q = db.session.query(LedgerTransaction).filter(
        LedgerTransaction.business_unit_id == business_unit_id
    )
    if start is not None:
        q = q.filter(LedgerTransaction.transaction_date >= start)
    if end is not None:
        q = q.filter(LedgerTransaction.transaction_date < end)
    if type:
        q = q.filter(LedgerTransaction.type == type)
    return q


def list_transactions(
    business_unit_id: int,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    type: str | None = None,
    limit: int | None = None,
) -> list[LedgerTransaction]:
    """Newest first."""
    q = _filtered(business_unit_id, start, end, type).order_by(
        LedgerTransaction.transaction_date.desc(), LedgerTransaction.id.desc()
    )
    if limit:
        q = q.limit(limit)
    return q.all()


def totals_by_type(
    business_unit_id: int,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict[str, Decimal]:
    rows = (
        _filtered(business_unit_id, start, end)
        .with_entities(LedgerTransaction.type, func.coalesce(func.sum(LedgerTransaction.amount), 0))
        .group_by(LedgerTransaction.type)
        .all()
    )
    return {row[0]: quantize_money(Decimal(str(row[1]))) for row in rows}


def find_by_source(source_reference: str) -> list[LedgerTransaction]:
    return (
        db.session.query(LedgerTransaction)
        .filter_by(source_reference=source_reference)
        .order_by(LedgerTransaction.id)
        .all()
    )
