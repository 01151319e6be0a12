from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import decimal_str


class StockTake(db.Model):
    """
    Physical count of a business unit's stock.

    Posting a stock take replaces each counted product's quantity with the
    counted value and books ONE ledger entry for the net variance value.
    """
    __tablename__ = "stock_takes"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Signed net variance valued at pre-take WAC
    total_variance_value = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    items = db.relationship("StockTakeItem", backref="stock_take", lazy=True, order_by="StockTakeItem.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_unit_id": self.business_unit_id,
            "user_id": self.user_id,
            "notes": self.notes,
            "total_variance_value": decimal_str(self.total_variance_value),
            "created_at": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }


class StockTakeItem(db.Model):
    __tablename__ = "stock_take_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    stock_take_id = db.Column(db.Integer, db.ForeignKey("stock_takes.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    system_qty = db.Column(db.Numeric(14, 3), nullable=False)
    counted_qty = db.Column(db.Numeric(14, 3), nullable=False)
    variance_qty = db.Column(db.Numeric(14, 3), nullable=False)
    cost_at_time = db.Column(db.Numeric(14, 4), nullable=False)
    variance_value = db.Column(db.Numeric(14, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "stock_take_id": self.stock_take_id,
            "product_id": self.product_id,
            "system_qty": decimal_str(self.system_qty),
            "counted_qty": decimal_str(self.counted_qty),
            "variance_qty": decimal_str(self.variance_qty),
            "cost_at_time": decimal_str(self.cost_at_time),
            "variance_value": decimal_str(self.variance_value),
        }


class StockTransfer(db.Model):
    """
    Internal stock request from one business unit to another.

    LIFECYCLE:
    - PENDING: requested by the requesting unit
    - COMPLETED: fulfilled by the providing unit (stock moved)
    - CANCELLED: withdrawn before fulfilment
    """
    __tablename__ = "stock_transfers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    requesting_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False, index=True)
    providing_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    # Optional matching product held by the requesting unit
    destination_product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)

    quantity_requested = db.Column(db.Numeric(14, 3), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)

    # Set on fulfilment: quantity x provider WAC
    unit_cost = db.Column(db.Numeric(14, 4), nullable=True)
    total_value = db.Column(db.Numeric(14, 2), nullable=True)

    requesting_user_id = db.Column(db.Integer, nullable=True)
    approving_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancellation_reason = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "requesting_unit_id": self.requesting_unit_id,
            "providing_unit_id": self.providing_unit_id,
            "product_id": self.product_id,
            "destination_product_id": self.destination_product_id,
            "quantity_requested": decimal_str(self.quantity_requested),
            "status": self.status,
            "unit_cost": decimal_str(self.unit_cost),
            "total_value": decimal_str(self.total_value),
            "requesting_user_id": self.requesting_user_id,
            "approving_user_id": self.approving_user_id,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "cancellation_reason": self.cancellation_reason,
        }


class Task(db.Model):
    """
    Workflow task assigned to a user (picking ticket, delivery run, ...).

    Follow-on tasks are spawned by workflow_service from an explicit
    transition table, never from ad hoc checks in callers.
    """
    __tablename__ = "tasks"
    __table_args__ = (
        db.Index("ix_tasks_assignee_status", "assigned_to_user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False, index=True)

    # MANUAL, PICKING, DELIVERY
    task_type = db.Column(db.String(16), nullable=False, default="MANUAL")
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    assigned_to_user_id = db.Column(db.Integer, nullable=True)

    # OPEN, IN_PROGRESS, COMPLETED, CANCELLED
    status = db.Column(db.String(16), nullable=False, default="OPEN", index=True)

    source_type = db.Column(db.String(32), nullable=True)
    source_id = db.Column(db.Integer, nullable=True)
    parent_task_id = db.Column(db.Integer, db.ForeignKey("tasks.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_unit_id": self.business_unit_id,
            "task_type": self.task_type,
            "title": self.title,
            "description": self.description,
            "assigned_to_user_id": self.assigned_to_user_id,
            "status": self.status,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "parent_task_id": self.parent_task_id,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at),
        }
