# Overview: Employees, staff loans and payroll runs.

from __future__ import annotations

from datetime import date
from decimal import Decimal

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import BusinessUnit, Employee, PayrollRun, Payslip, StaffLoan
from ..time_utils import parse_iso_date, utcnow
from ..validation import non_negative_cost, positive_amount, quantize_money, require_id, require_text, to_decimal
from .concurrency import lock_for_update, unit_of_work
from . import ledger_service
"""
Payroll Invariants (authoritative)

- weekly employees earn pay_rate per run; hourly employees earn
  pay_rate * hours supplied for the run (0 when none supplied).
- Loan deduction = min(remaining loan balance, requested deduction, gross).
- A loan is deactivated in the same run that repays it in full.
- net = gross - deduction; one EXPENSE entry of net per payslip, booked to the
  employee's own business unit.
- PayrollRun.total_paid == SUM(payslip.net_pay).
"""


PAY_TYPES = ("hourly", "weekly")


def create_employee(
    *,
    business_unit_id: int,
    name: str,
    pay_type: str,
    pay_rate,
    user_id: int | None = None,
) -> Employee:
    pay_type = (pay_type or "").lower()
    if pay_type not in PAY_TYPES:
        raise ValidationError("pay_type must be 'hourly' or 'weekly'")
    business_unit_id = require_id(business_unit_id, "business_unit_id")

    with unit_of_work("create employee"):
        if db.session.get(BusinessUnit, business_unit_id) is None:
            raise NotFoundError("Business unit", business_unit_id)
        employee = Employee(
            business_unit_id=business_unit_id,
            user_id=user_id,
            name=require_text(name, "name", max_length=128),
            pay_type=pay_type,
            pay_rate=quantize_money(non_negative_cost(pay_rate, "pay_rate")),
        )
        db.session.add(employee)
        db.session.flush()
        return employee


def get_employee(employee_id: int) -> Employee:
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee", employee_id)
    return employee


def list_employees(business_unit_id: int | None = None) -> list[Employee]:
    q = db.session.query(Employee)
    if business_unit_id is not None:
        q = q.filter_by(business_unit_id=business_unit_id)
    return q.order_by(Employee.name).all()


def issue_loan(*, employee_id: int, principal_amount) -> StaffLoan:
    principal = positive_amount(principal_amount, "principal_amount")
    with unit_of_work("issue staff loan"):
        employee = get_employee(employee_id)
        loan = StaffLoan(employee_id=employee.id, principal_amount=principal, amount_repaid=Decimal("0.00"))
        db.session.add(loan)
        db.session.flush()
        return loan


def _period_date(value, field: str) -> date:
    if isinstance(value, date):
        return value
    try:
        parsed = parse_iso_date(value)
    except (AttributeError, ValueError):
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")
    if parsed is None:
        raise ValidationError(f"{field} is required")
    return parsed


def _keyed_decimals(mapping, field: str) -> dict[int, Decimal]:
    """JSON object keys arrive as strings; normalize to {employee_id: Decimal}."""
    if not mapping:
        return {}
    if not isinstance(mapping, dict):
        raise ValidationError(f"{field} must be an object keyed by employee id")
    out = {}
    for key, value in mapping.items():
        try:
            employee_id = int(key)
        except (TypeError, ValueError):
            raise ValidationError(f"{field} keys must be employee ids")
        amount = to_decimal(value, field)
        if amount < 0:
            raise ValidationError(f"{field} cannot be negative")
        out[employee_id] = amount
    return out


def _deduct_loans(loans: list[StaffLoan], requested: Decimal) -> Decimal:
    remaining_request = requested
    deducted = Decimal("0.00")
    for loan in loans:
        if remaining_request <= 0:
            break
        take = quantize_money(min(loan.remaining_balance, remaining_request))
        if take <= 0:
            continue
        loan.amount_repaid = quantize_money(Decimal(loan.amount_repaid) + take)
        if Decimal(loan.amount_repaid) >= Decimal(loan.principal_amount):
            loan.is_active = False
            loan.repaid_at = utcnow()
        deducted += take
        remaining_request -= take
    return deducted


def run_payroll(
    *,
    pay_period_start,
    pay_period_end,
    hours_worked: dict | None = None,
    loan_repayment_amount=0,
    loan_deductions: dict | None = None,
    business_unit_id: int | None = None,
    user_id: int | None = None,
) -> PayrollRun:
    """
    Pay every active employee (optionally only those of one business unit).

    ``loan_repayment_amount`` is the deduction requested from every employee
    with an active loan; ``loan_deductions`` overrides it per employee id.
    """
    start = _period_date(pay_period_start, "pay_period_start")
    end = _period_date(pay_period_end, "pay_period_end")
    if end < start:
        raise ValidationError("pay_period_end cannot be before pay_period_start")
    hours = _keyed_decimals(hours_worked, "hours_worked")
    overrides = _keyed_decimals(loan_deductions, "loan_deductions")
    default_deduction = quantize_money(to_decimal(loan_repayment_amount or 0, "loan_repayment_amount"))
    if default_deduction < 0:
        raise ValidationError("loan_repayment_amount cannot be negative")

    with unit_of_work("payroll run"):
        q = db.session.query(Employee).filter(Employee.is_active.is_(True))
        if business_unit_id is not None:
            q = q.filter(Employee.business_unit_id == business_unit_id)
        employees = q.order_by(Employee.id).all()
        if not employees:
            raise ValidationError("No active employees to pay")

        run = PayrollRun(pay_period_start=start, pay_period_end=end, user_id=user_id, total_paid=Decimal("0.00"))
        db.session.add(run)
        db.session.flush()

        active_loans = (
            lock_for_update(
                db.session.query(StaffLoan).filter(
                    StaffLoan.employee_id.in_([e.id for e in employees]),
                    StaffLoan.is_active.is_(True),
                )
            )
            .order_by(StaffLoan.id)
            .all()
        )
        loans_by_employee: dict[int, list[StaffLoan]] = {}
        for loan in active_loans:
            loans_by_employee.setdefault(loan.employee_id, []).append(loan)

        total = Decimal("0.00")
        for emp in employees:
            worked = None
            if emp.pay_type == "weekly":
                gross = quantize_money(Decimal(emp.pay_rate))
            else:
                worked = hours.get(emp.id, Decimal("0"))
                gross = quantize_money(Decimal(emp.pay_rate) * worked)

            requested = quantize_money(overrides.get(emp.id, default_deduction))
            deduction = _deduct_loans(loans_by_employee.get(emp.id, []), min(requested, gross))
            net = quantize_money(gross - deduction)

            slip = Payslip(
                payroll_run_id=run.id,
                employee_id=emp.id,
                hours_worked=worked,
                gross_pay=gross,
                loan_deduction=deduction,
                net_pay=net,
            )
            db.session.add(slip)

            ledger_service.append_transaction(
                business_unit_id=emp.business_unit_id,
                amount=net,
                type=ledger_service.TYPE_EXPENSE,
                description=f"Payroll for {start.isoformat()} to {end.isoformat()}: {emp.name}",
                source_reference=f"payslip:{run.id}-{emp.id}",
                user_id=user_id,
            )
            total += net

        run.total_paid = quantize_money(total)
        return run


def get_payroll_run(run_id: int) -> PayrollRun:
    run = db.session.get(PayrollRun, run_id)
    if run is None:
        raise NotFoundError("Payroll run", run_id)
    return run
