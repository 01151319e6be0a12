from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import decimal_str


class ScrapPurchase(db.Model):
    """Material bought over the scale and paid out of a safe."""
    __tablename__ = "scrap_purchases"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    safe_id = db.Column(db.Integer, db.ForeignKey("cash_safes.id"), nullable=False)
    user_id = db.Column(db.Integer, nullable=True)

    weight_kg = db.Column(db.Numeric(14, 3), nullable=False)
    # WAC read once, under lock, when the payout was computed
    price_per_kg = db.Column(db.Numeric(14, 4), nullable=False)
    payout_amount = db.Column(db.Numeric(14, 2), nullable=False)

    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_unit_id": self.business_unit_id,
            "product_id": self.product_id,
            "supplier_id": self.supplier_id,
            "safe_id": self.safe_id,
            "user_id": self.user_id,
            "weight_kg": decimal_str(self.weight_kg),
            "price_per_kg": decimal_str(self.price_per_kg),
            "payout_amount": decimal_str(self.payout_amount),
            "purchase_date": to_utc_z(self.purchase_date),
        }


class ScrapSale(db.Model):
    """Bulk sale of graded material to a buyer."""
    __tablename__ = "scrap_sales"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    buyer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    safe_id = db.Column(db.Integer, db.ForeignKey("cash_safes.id"), nullable=False)
    user_id = db.Column(db.Integer, nullable=True)

    weight_kg = db.Column(db.Numeric(14, 3), nullable=False)
    revenue_amount = db.Column(db.Numeric(14, 2), nullable=False)
    cost_at_sale = db.Column(db.Numeric(14, 4), nullable=False)
    invoice_number = db.Column(db.String(64), nullable=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_unit_id": self.business_unit_id,
            "product_id": self.product_id,
            "buyer_id": self.buyer_id,
            "safe_id": self.safe_id,
            "user_id": self.user_id,
            "weight_kg": decimal_str(self.weight_kg),
            "revenue_amount": decimal_str(self.revenue_amount),
            "cost_at_sale": decimal_str(self.cost_at_sale),
            "invoice_number": self.invoice_number,
            "sale_date": to_utc_z(self.sale_date),
        }
