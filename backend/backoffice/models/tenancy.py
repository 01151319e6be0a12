from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class BusinessUnit(db.Model):
    """
    One business operated from the shared back office (shop, scrapyard,
    paint bar, panel beater).

    business_type decides whether stock moving between two units is a
    financial event: units of different types invoice each other internally,
    units of the same type only move stock.
    """
    __tablename__ = "business_units"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_business_units_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)

    # RETAIL, SCRAPYARD, PAINT, PANELBEATING, ...
    business_type = db.Column(db.String(32), nullable=False, index=True)

    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<BusinessUnit id={self.id} name={self.name!r} type={self.business_type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "business_type": self.business_type,
            "address": self.address,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
        }
