from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import decimal_str


class LedgerTransaction(db.Model):
    """
    Master transaction log: the system of record for income, expense and
    internal movements.

    INVARIANTS:
    - Append-only. Rows are never updated or deleted (enforced by ORM
      listeners in backoffice.immutability).
    - Written inside the same DB transaction as the mutations it records.
    - amount is stored positive; type carries the direction.
    - source_reference is "<entity>:<id>" pointing at the originating record.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_unit_date", "business_unit_id", "transaction_date"),
        db.Index("ix_transactions_unit_type", "business_unit_id", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    type = db.Column(db.String(24), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    source_reference = db.Column(db.String(128), nullable=True, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True)
    user_id = db.Column(db.Integer, nullable=True)

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<LedgerTransaction id={self.id} type={self.type} amount={self.amount} ref={self.source_reference!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_unit_id": self.business_unit_id,
            "amount": decimal_str(self.amount),
            "type": self.type,
            "description": self.description,
            "source_reference": self.source_reference,
            "customer_id": self.customer_id,
            "supplier_id": self.supplier_id,
            "user_id": self.user_id,
            "transaction_date": to_utc_z(self.transaction_date),
        }
