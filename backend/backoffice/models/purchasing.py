from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import decimal_str


class PurchaseOrder(db.Model):
    """
    Order placed with a supplier.

    LIFECYCLE:
    - Pending: created, nothing received
    - Partially Received: at least one receipt, some quantity still open
    - Received: every line fully received

    received_value accumulates the VAT-inclusive value of all receipts and
    amount_paid the supplier payments allocated to this order; the difference
    is what the business still owes on it.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, nullable=True)

    # VAT-exclusive ordered value
    total_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    received_value = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    amount_paid = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    status = db.Column(db.String(24), nullable=False, default="Pending", index=True)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    items = db.relationship("PurchaseOrderItem", backref="purchase_order", lazy=True, order_by="PurchaseOrderItem.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "business_unit_id": self.business_unit_id,
            "user_id": self.user_id,
            "total_amount": decimal_str(self.total_amount),
            "received_value": decimal_str(self.received_value),
            "amount_paid": decimal_str(self.amount_paid),
            "status": self.status,
            "order_date": to_utc_z(self.order_date),
            "received_at": to_utc_z(self.received_at),
            "items": [item.to_dict() for item in self.items],
        }


class PurchaseOrderItem(db.Model):
    """Ordered line; cost_at_order is frozen when the order is placed."""
    __tablename__ = "purchase_order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Numeric(14, 3), nullable=False)
    cost_at_order = db.Column(db.Numeric(14, 4), nullable=False)
    quantity_received = db.Column(db.Numeric(14, 3), nullable=False, default=0)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "quantity": decimal_str(self.quantity),
            "cost_at_order": decimal_str(self.cost_at_order),
            "quantity_received": decimal_str(self.quantity_received),
        }


class PurchaseReceipt(db.Model):
    """Log of one receipt event against an order line."""
    __tablename__ = "purchase_receipts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    purchase_order_item_id = db.Column(db.Integer, db.ForeignKey("purchase_order_items.id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity_received = db.Column(db.Numeric(14, 3), nullable=False)
    unit_cost = db.Column(db.Numeric(14, 4), nullable=False)
    wac_after = db.Column(db.Numeric(14, 4), nullable=False)

    user_id = db.Column(db.Integer, nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "purchase_order_item_id": self.purchase_order_item_id,
            "product_id": self.product_id,
            "quantity_received": decimal_str(self.quantity_received),
            "unit_cost": decimal_str(self.unit_cost),
            "wac_after": decimal_str(self.wac_after),
            "user_id": self.user_id,
            "received_at": to_utc_z(self.received_at),
        }


class SupplierPayment(db.Model):
    __tablename__ = "supplier_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False)
    safe_id = db.Column(db.Integer, db.ForeignKey("cash_safes.id"), nullable=False)
    user_id = db.Column(db.Integer, nullable=True)

    total_amount = db.Column(db.Numeric(14, 2), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    allocations = db.relationship("SupplierPaymentAllocation", backref="payment", lazy=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "business_unit_id": self.business_unit_id,
            "safe_id": self.safe_id,
            "user_id": self.user_id,
            "total_amount": decimal_str(self.total_amount),
            "notes": self.notes,
            "payment_date": to_utc_z(self.payment_date),
            "allocations": [
                {"purchase_order_id": a.purchase_order_id, "amount_applied": decimal_str(a.amount_applied)}
                for a in self.allocations
            ],
        }


class SupplierPaymentAllocation(db.Model):
    __tablename__ = "supplier_payment_allocations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("supplier_payments.id"), nullable=False, index=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    amount_applied = db.Column(db.Numeric(14, 2), nullable=False)
