from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import decimal_str


class Customer(db.Model):
    """
    Customer of one business unit.

    account_balance is the amount owed TO the business. It is a derived
    value: counterparty_service recomputes it as SUM(total_amount - amount_paid)
    over the customer's sales that are not fully paid.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_unit_name", "business_unit_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False, index=True)

    name = db.Column(db.String(128), nullable=False)
    phone_number = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    account_balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_unit_id": self.business_unit_id,
            "name": self.name,
            "phone_number": self.phone_number,
            "email": self.email,
            "account_balance": decimal_str(self.account_balance),
            "created_at": to_utc_z(self.created_at),
        }


class Supplier(db.Model):
    """
    Supplier of one business unit.

    account_balance is the amount owed BY the business, recomputed as
    SUM(received_value - amount_paid) over the supplier's purchase orders.
    """
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False, index=True)

    name = db.Column(db.String(128), nullable=False)
    contact_person = db.Column(db.String(128), nullable=True)
    phone_number = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    account_balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_unit_id": self.business_unit_id,
            "name": self.name,
            "contact_person": self.contact_person,
            "phone_number": self.phone_number,
            "email": self.email,
            "account_balance": decimal_str(self.account_balance),
            "created_at": to_utc_z(self.created_at),
        }
