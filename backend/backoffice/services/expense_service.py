from __future__ import annotations

from ..models import LedgerTransaction
from ..validation import positive_amount, require_id, require_text
from .concurrency import unit_of_work
from . import ledger_service, treasury_service


def record_expense(
    *,
    business_unit_id: int,
    safe_id: int,
    amount,
    description: str,
    user_id: int | None = None,
) -> LedgerTransaction:
    """
    Pay a general expense out of a safe.

    Writes one EXPENSE entry and one CASH_OUT movement linked to it.

    Raises:
        InsufficientFundsError: the safe cannot cover ``amount``.
    """
    amount = positive_amount(amount, "amount")
    description = require_text(description, "description")
    business_unit_id = require_id(business_unit_id, "business_unit_id")

    with unit_of_work("expense"):
        safe = treasury_service.get_safe(safe_id, lock=True)
        entry = ledger_service.append_transaction(
            business_unit_id=business_unit_id,
            amount=amount,
            type=ledger_service.TYPE_EXPENSE,
            description=description,
            source_reference="manual_expense",
            user_id=user_id,
        )
        treasury_service.debit(
            safe, amount, treasury_service.MOVE_CASH_OUT,
            description=description, user_id=user_id, expense_id=entry.id,
        )
        return entry
