from decimal import Decimal

import pytest

from backoffice.errors import ValidationError
from backoffice.models import StaffLoan
from backoffice.services import ledger_service, payroll_service


def _slips(run):
    return {slip.employee_id: slip for slip in payroll_service.get_payroll_run(run.id).payslips}


def test_weekly_and_hourly_pay(retail):
    weekly = payroll_service.create_employee(
        business_unit_id=retail.id, name="Sipho", pay_type="weekly", pay_rate="1000"
    )
    hourly = payroll_service.create_employee(
        business_unit_id=retail.id, name="Anele", pay_type="HOURLY", pay_rate="50"
    )

    run = payroll_service.run_payroll(
        pay_period_start="2024-03-01",
        pay_period_end="2024-03-07",
        hours_worked={str(hourly.id): "40"},
    )

    slips = _slips(run)
    assert slips[weekly.id].gross_pay == Decimal("1000.00")
    assert slips[hourly.id].gross_pay == Decimal("2000.00")
    assert slips[hourly.id].hours_worked == Decimal("40")
    assert run.total_paid == Decimal("3000.00")

    expense = ledger_service.find_by_source(f"payslip:{run.id}-{hourly.id}")
    assert [(e.type, e.amount, e.business_unit_id) for e in expense] == [("EXPENSE", Decimal("2000.00"), retail.id)]


def test_loan_deduction_is_capped_at_remaining_balance(db_session, retail):
    employee = payroll_service.create_employee(
        business_unit_id=retail.id, name="Sipho", pay_type="weekly", pay_rate="1000"
    )
    loan = payroll_service.issue_loan(employee_id=employee.id, principal_amount="300")

    run = payroll_service.run_payroll(
        pay_period_start="2024-03-01", pay_period_end="2024-03-07", loan_repayment_amount="500"
    )

    slip = _slips(run)[employee.id]
    assert slip.loan_deduction == Decimal("300.00")
    assert slip.net_pay == Decimal("700.00")

    loan = db_session.get(StaffLoan, loan.id)
    assert loan.amount_repaid == Decimal("300.00")
    assert loan.is_active is False
    assert loan.repaid_at is not None

    expense = ledger_service.find_by_source(f"payslip:{run.id}-{employee.id}")
    assert expense[0].amount == Decimal("700.00")


def test_partial_repayment_keeps_loan_open(db_session, retail):
    employee = payroll_service.create_employee(
        business_unit_id=retail.id, name="Sipho", pay_type="weekly", pay_rate="1000"
    )
    loan = payroll_service.issue_loan(employee_id=employee.id, principal_amount="300")

    payroll_service.run_payroll(
        pay_period_start="2024-03-01",
        pay_period_end="2024-03-07",
        loan_deductions={str(employee.id): "100"},
    )

    loan = db_session.get(StaffLoan, loan.id)
    assert loan.amount_repaid == Decimal("100.00")
    assert loan.is_active is True


def test_deduction_never_exceeds_gross(retail):
    employee = payroll_service.create_employee(
        business_unit_id=retail.id, name="Part Timer", pay_type="hourly", pay_rate="20"
    )
    payroll_service.issue_loan(employee_id=employee.id, principal_amount="500")

    run = payroll_service.run_payroll(
        pay_period_start="2024-03-01",
        pay_period_end="2024-03-07",
        hours_worked={str(employee.id): "5"},
        loan_repayment_amount="500",
    )

    slip = _slips(run)[employee.id]
    assert slip.gross_pay == Decimal("100.00")
    assert slip.loan_deduction == Decimal("100.00")
    assert slip.net_pay == Decimal("0.00")


def test_employee_without_loan_pays_in_full(retail):
    employee = payroll_service.create_employee(
        business_unit_id=retail.id, name="Sipho", pay_type="weekly", pay_rate="800"
    )
    run = payroll_service.run_payroll(
        pay_period_start="2024-03-01", pay_period_end="2024-03-07", loan_repayment_amount="200"
    )
    assert _slips(run)[employee.id].net_pay == Decimal("800.00")


def test_invalid_runs_are_rejected(retail):
    with pytest.raises(ValidationError):
        payroll_service.run_payroll(pay_period_start="2024-03-01", pay_period_end="2024-03-07")

    payroll_service.create_employee(business_unit_id=retail.id, name="Sipho", pay_type="weekly", pay_rate="800")
    with pytest.raises(ValidationError):
        payroll_service.run_payroll(pay_period_start="2024-03-07", pay_period_end="2024-03-01")
    with pytest.raises(ValidationError):
        payroll_service.run_payroll(pay_period_start="March", pay_period_end="2024-03-07")
