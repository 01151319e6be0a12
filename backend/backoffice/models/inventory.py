from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import decimal_str


class Product(db.Model):
    """
    Inventory item owned by one business unit.

    quantity_on_hand may be discrete units or a weight/volume (unit_type).
    cost_price is the current weighted-average cost (WAC); it is recomputed
    by inventory_service on every inbound movement and is only overwritten
    directly by an explicit product edit.

    INVARIANTS:
    - quantity_on_hand >= 0 (a stock take may assign the counted value directly).
    - cost_price carries 4 decimal places.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("business_unit_id", "sku", name="uq_products_unit_sku"),
        db.Index("ix_products_unit_name", "business_unit_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)

    # EACH, KG, LITRE, ...
    unit_type = db.Column(db.String(16), nullable=False, default="EACH")

    quantity_on_hand = db.Column(db.Numeric(14, 3), nullable=False, default=0)
    cost_price = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    selling_price = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    business_unit = db.relationship("BusinessUnit", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} qty={self.quantity_on_hand} wac={self.cost_price}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_unit_id": self.business_unit_id,
            "name": self.name,
            "sku": self.sku,
            "unit_type": self.unit_type,
            "quantity_on_hand": decimal_str(self.quantity_on_hand),
            "cost_price": decimal_str(self.cost_price),
            "selling_price": decimal_str(self.selling_price),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class BillOfMaterialsLine(db.Model):
    """Static recipe data: quantity of an ingredient consumed per finished unit."""
    __tablename__ = "bill_of_materials"
    __table_args__ = (
        db.UniqueConstraint(
            "finished_good_product_id", "ingredient_product_id", name="uq_bom_finished_ingredient"
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    finished_good_product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    ingredient_product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity_required = db.Column(db.Numeric(14, 3), nullable=False)

    finished_good = db.relationship("Product", foreign_keys=[finished_good_product_id])
    ingredient = db.relationship("Product", foreign_keys=[ingredient_product_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "finished_good_product_id": self.finished_good_product_id,
            "ingredient_product_id": self.ingredient_product_id,
            "ingredient_name": self.ingredient.name if self.ingredient else None,
            "quantity_required": decimal_str(self.quantity_required),
        }


class MaterialMix(db.Model):
    """One executed mix: ingredients consumed into a finished good."""
    __tablename__ = "material_mixes"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False, index=True)
    finished_good_product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity_mixed = db.Column(db.Numeric(14, 3), nullable=False)
    # Sum of consumed quantity x ingredient WAC
    total_cost = db.Column(db.Numeric(14, 2), nullable=False)
    wac_after = db.Column(db.Numeric(14, 4), nullable=False)

    user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    finished_good = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_unit_id": self.business_unit_id,
            "finished_good_product_id": self.finished_good_product_id,
            "quantity_mixed": decimal_str(self.quantity_mixed),
            "total_cost": decimal_str(self.total_cost),
            "wac_after": decimal_str(self.wac_after),
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }
