"""
ORM-level append-only enforcement for the audit tables.

The master transaction log and the cash ledger are written once and never
changed. These listeners fire before SQLAlchemy sends an UPDATE or DELETE
for a mapped row and abort the flush instead.

Bulk Core statements (``table.delete()``) bypass the ORM and are not
checked; only test fixtures use them.
"""
from __future__ import annotations

from sqlalchemy import event

from .models import CashLedgerEntry, LedgerTransaction


class ImmutabilityViolationError(Exception):
    """Raised when code tries to modify or delete an append-only row."""


def _reject_update(mapper, connection, target):
    raise ImmutabilityViolationError(
        f"{type(target).__name__} {target.id} is append-only and cannot be modified"
    )


def _reject_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        f"{type(target).__name__} {target.id} is append-only and cannot be deleted"
    )


def register_immutability_listeners() -> None:
    """Idempotent; safe to call from every create_app()."""
    for model in (LedgerTransaction, CashLedgerEntry):
        if not event.contains(model, "before_update", _reject_update):
            event.listen(model, "before_update", _reject_update)
        if not event.contains(model, "before_delete", _reject_delete):
            event.listen(model, "before_delete", _reject_delete)
