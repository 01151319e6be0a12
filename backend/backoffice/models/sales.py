from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import decimal_str


class Sale(db.Model):
    """
    Point-of-sale transaction.

    total_amount is VAT-inclusive. payment_status is one of
    "Paid", "On Account", "Partially Paid"; it moves to "Paid" once
    amount_paid >= total_amount.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_unit_date", "business_unit_id", "sale_date"),
        db.Index("ix_sales_customer_status", "customer_id", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    user_id = db.Column(db.Integer, nullable=True)

    # CASH, CARD, EFT, ON_ACCOUNT
    payment_method = db.Column(db.String(16), nullable=False)
    safe_id = db.Column(db.Integer, db.ForeignKey("cash_safes.id"), nullable=True)

    total_amount = db.Column(db.Numeric(14, 2), nullable=False)
    total_vat_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    amount_paid = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, index=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    items = db.relationship("SaleItem", backref="sale", lazy=True, order_by="SaleItem.id")

    @property
    def outstanding(self):
        return self.total_amount - self.amount_paid

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_unit_id": self.business_unit_id,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
            "payment_method": self.payment_method,
            "safe_id": self.safe_id,
            "total_amount": decimal_str(self.total_amount),
            "total_vat_amount": decimal_str(self.total_vat_amount),
            "amount_paid": decimal_str(self.amount_paid),
            "payment_status": self.payment_status,
            "sale_date": to_utc_z(self.sale_date),
            "items": [item.to_dict() for item in self.items],
        }


class SaleItem(db.Model):
    """
    One sold line.

    cost_at_sale is a snapshot of the product WAC taken when the sale was
    written; it is never recomputed, so historical COGS stays fixed.
    """
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity_sold = db.Column(db.Numeric(14, 3), nullable=False)
    # VAT-exclusive unit price
    price_at_sale = db.Column(db.Numeric(14, 2), nullable=False)
    cost_at_sale = db.Column(db.Numeric(14, 4), nullable=False)
    vat_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity_sold": decimal_str(self.quantity_sold),
            "price_at_sale": decimal_str(self.price_at_sale),
            "cost_at_sale": decimal_str(self.cost_at_sale),
            "vat_amount": decimal_str(self.vat_amount),
        }


class CustomerPayment(db.Model):
    """Payment header received from a customer against on-account sales."""
    __tablename__ = "customer_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False)
    safe_id = db.Column(db.Integer, db.ForeignKey("cash_safes.id"), nullable=False)
    user_id = db.Column(db.Integer, nullable=True)

    total_amount = db.Column(db.Numeric(14, 2), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    customer = db.relationship("Customer", backref=db.backref("payments", lazy=True))
    allocations = db.relationship("SalePaymentAllocation", backref="payment", lazy=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "business_unit_id": self.business_unit_id,
            "safe_id": self.safe_id,
            "user_id": self.user_id,
            "total_amount": decimal_str(self.total_amount),
            "notes": self.notes,
            "payment_date": to_utc_z(self.payment_date),
            "allocations": [a.to_dict() for a in self.allocations],
        }


class SalePaymentAllocation(db.Model):
    __tablename__ = "sale_payment_allocations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("customer_payments.id"), nullable=False, index=True)
    amount_applied = db.Column(db.Numeric(14, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "sale_id": self.sale_id,
            "payment_id": self.payment_id,
            "amount_applied": decimal_str(self.amount_applied),
        }
