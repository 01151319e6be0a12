from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import decimal_str


class Employee(db.Model):
    __tablename__ = "employees"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("business_units.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, nullable=True)
    name = db.Column(db.String(128), nullable=False)

    # hourly: pay_rate x hours worked; weekly: flat pay_rate per run
    pay_type = db.Column(db.String(16), nullable=False)
    pay_rate = db.Column(db.Numeric(14, 2), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_unit_id": self.business_unit_id,
            "user_id": self.user_id,
            "name": self.name,
            "pay_type": self.pay_type,
            "pay_rate": decimal_str(self.pay_rate),
            "is_active": self.is_active,
        }


class StaffLoan(db.Model):
    """Advance to an employee, repaid through payroll deductions."""
    __tablename__ = "staff_loans"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    principal_amount = db.Column(db.Numeric(14, 2), nullable=False)
    amount_repaid = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    issued_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    repaid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    employee = db.relationship("Employee", backref=db.backref("loans", lazy=True))

    @property
    def remaining_balance(self):
        return self.principal_amount - self.amount_repaid

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "principal_amount": decimal_str(self.principal_amount),
            "amount_repaid": decimal_str(self.amount_repaid),
            "remaining_balance": decimal_str(self.remaining_balance),
            "is_active": self.is_active,
            "issued_at": to_utc_z(self.issued_at),
            "repaid_at": to_utc_z(self.repaid_at),
        }


class PayrollRun(db.Model):
    __tablename__ = "payroll_runs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    pay_period_start = db.Column(db.Date, nullable=False)
    pay_period_end = db.Column(db.Date, nullable=False)
    total_paid = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    payslips = db.relationship("Payslip", backref="payroll_run", lazy=True, order_by="Payslip.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pay_period_start": self.pay_period_start.isoformat(),
            "pay_period_end": self.pay_period_end.isoformat(),
            "total_paid": decimal_str(self.total_paid),
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "payslips": [p.to_dict() for p in self.payslips],
        }


class Payslip(db.Model):
    __tablename__ = "payslips"
    __table_args__ = (
        db.UniqueConstraint("payroll_run_id", "employee_id", name="uq_payslips_run_employee"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    payroll_run_id = db.Column(db.Integer, db.ForeignKey("payroll_runs.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    hours_worked = db.Column(db.Numeric(8, 2), nullable=True)
    gross_pay = db.Column(db.Numeric(14, 2), nullable=False)
    loan_deduction = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    net_pay = db.Column(db.Numeric(14, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "payroll_run_id": self.payroll_run_id,
            "employee_id": self.employee_id,
            "hours_worked": decimal_str(self.hours_worked),
            "gross_pay": decimal_str(self.gross_pay),
            "loan_deduction": decimal_str(self.loan_deduction),
            "net_pay": decimal_str(self.net_pay),
        }
