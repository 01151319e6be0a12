from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import decimal_str


class Job(db.Model):
    """
    Workshop job card (panel beating).

    Parts drawn from stock against the job are recorded as JobItem rows and
    expensed at the WAC in force when they were used.

    LIFECYCLE:
    - In Progress: open, parts may be added
    - Completed: closed, no further parts
    """
    __tablename__ = "jobs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(128), nullable=True)
    vehicle_details = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(32), nullable=False, default="In Progress", index=True)
    user_id = db.Column(db.Integer, nullable=True)

    # Running sum of JobItem.line_cost
    total_parts_cost = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    items = db.relationship("JobItem", backref="job", lazy=True, order_by="JobItem.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_unit_id": self.business_unit_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "vehicle_details": self.vehicle_details,
            "status": self.status,
            "user_id": self.user_id,
            "total_parts_cost": decimal_str(self.total_parts_cost),
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at),
            "items": [item.to_dict() for item in self.items],
        }


class JobItem(db.Model):
    __tablename__ = "job_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey("jobs.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity_used = db.Column(db.Numeric(14, 3), nullable=False)

    # WAC snapshot at the moment of use
    cost_at_time_of_use = db.Column(db.Numeric(14, 4), nullable=False)
    line_cost = db.Column(db.Numeric(14, 2), nullable=False)

    user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "product_id": self.product_id,
            "quantity_used": decimal_str(self.quantity_used),
            "cost_at_time_of_use": decimal_str(self.cost_at_time_of_use),
            "line_cost": decimal_str(self.line_cost),
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }
