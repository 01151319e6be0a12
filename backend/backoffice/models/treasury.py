from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import decimal_str


class CashSafe(db.Model):
    """
    A named cash-holding account: till, floor safe or bank account.

    INVARIANTS:
    - current_balance never goes negative as the result of a debit.
    - Mutated only by treasury_service; every change writes one CashLedgerEntry.
    - current_balance - opening_balance == SUM(cash_ledger.amount) for the safe.
    - Never deleted.
    """
    __tablename__ = "cash_safes"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_cash_safes_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)

    opening_balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    current_balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    # Physical cash (tills, safes) vs bank/card settlement accounts
    is_physical_cash = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<CashSafe id={self.id} name={self.name!r} balance={self.current_balance}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "opening_balance": decimal_str(self.opening_balance),
            "current_balance": decimal_str(self.current_balance),
            "is_physical_cash": self.is_physical_cash,
            "created_at": to_utc_z(self.created_at),
        }


class CashLedgerEntry(db.Model):
    """
    Immutable, safe-scoped record of one cash movement.

    Debits are stored negative and credits positive. Optional links point
    back at the sale, expense (master transaction) or customer payment that
    caused the movement; other sources use source_reference.
    """
    __tablename__ = "cash_ledger"
    __table_args__ = (
        db.Index("ix_cash_ledger_safe_created", "safe_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    safe_id = db.Column(db.Integer, db.ForeignKey("cash_safes.id"), nullable=False, index=True)

    # TRANSFER_IN, TRANSFER_OUT, SALE_CASH, SALE_CARD, SALE_EFT, PAYOUT, CASH_OUT, ACCOUNT_PAYMENT
    type = db.Column(db.String(32), nullable=False, index=True)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    balance_after = db.Column(db.Numeric(14, 2), nullable=False)
    description = db.Column(db.String(255), nullable=True)

    user_id = db.Column(db.Integer, nullable=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    expense_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("customer_payments.id"), nullable=True)
    source_reference = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    safe = db.relationship("CashSafe", backref=db.backref("ledger_entries", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "safe_id": self.safe_id,
            "type": self.type,
            "amount": decimal_str(self.amount),
            "balance_after": decimal_str(self.balance_after),
            "description": self.description,
            "user_id": self.user_id,
            "sale_id": self.sale_id,
            "expense_id": self.expense_id,
            "payment_id": self.payment_id,
            "source_reference": self.source_reference,
            "created_at": to_utc_z(self.created_at),
        }
