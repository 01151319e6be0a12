# Overview: Read-side projections over the ledger store; no writes, no locks.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import Customer, Product, Sale, SaleItem
from ..time_utils import day_range
from ..validation import quantize_money
from . import counterparty_service, inventory_service, ledger_service, treasury_service


def _window(start_date: str | None, end_date: str | None):
    try:
        return day_range(start_date, end_date)
    except ValueError:
        raise ValidationError("Dates must be ISO-8601 (YYYY-MM-DD)")


def _money(value) -> Decimal:
    return quantize_money(Decimal(str(value or 0)))


# =============================================================================
# POINT-IN-TIME BALANCES
# =============================================================================

def safe_balance(safe_id: int) -> dict:
    safe = treasury_service.get_safe(safe_id)
    return {
        "safe_id": safe.id,
        "name": safe.name,
        "current_balance": str(safe.current_balance),
    }


def customer_balance(customer_id: int) -> dict:
    customer = counterparty_service.get_customer(customer_id)
    return {
        "customer_id": customer.id,
        "name": customer.name,
        "account_balance": str(customer.account_balance),
        "open_sales": [
            {"sale_id": s.id, "outstanding": str(s.outstanding), "payment_status": s.payment_status}
            for s in counterparty_service.open_sales(customer.id)
        ],
    }


def supplier_balance(supplier_id: int) -> dict:
    supplier = counterparty_service.get_supplier(supplier_id)
    return {
        "supplier_id": supplier.id,
        "name": supplier.name,
        "account_balance": str(supplier.account_balance),
    }


def product_position(product_id: int) -> dict:
    product = inventory_service.get_product(product_id)
    return {
        "product_id": product.id,
        "name": product.name,
        "quantity_on_hand": str(product.quantity_on_hand),
        "cost_price": str(product.cost_price),
        "stock_value": str(inventory_service.stock_value(product)),
    }


# =============================================================================
# LEDGER
# =============================================================================

def ledger_report(
    business_unit_id: int,
    *,
    start_date: str | None = None,
    end_date: str | None = None,
    type: str | None = None,
) -> dict:
    """
    Entries for one business unit, newest first, plus an income/expense
    summary over the same window. ``end_date`` includes its whole day.
    """
    start, end = _window(start_date, end_date)
    entries = ledger_service.list_transactions(business_unit_id, start=start, end=end, type=type)

    total_income = Decimal("0.00")
    total_expense = Decimal("0.00")
    for entry_type, total in ledger_service.totals_by_type(business_unit_id, start=start, end=end).items():
        if "INCOME" in entry_type:
            total_income += total
        elif "EXPENSE" in entry_type:
            total_expense += abs(total)

    return {
        "transactions": [entry.to_dict() for entry in entries],
        "summary": {
            "total_income": str(quantize_money(total_income)),
            "total_expense": str(quantize_money(total_expense)),
        },
    }


# =============================================================================
# PROFIT AND LOSS
# =============================================================================

def profit_and_loss(business_unit_id: int, *, start_date: str, end_date: str, top_n: int = 10) -> dict:
    if not start_date or not end_date:
        raise ValidationError("start_date and end_date are required")
    start, end = _window(start_date, end_date)

    totals = ledger_service.totals_by_type(business_unit_id, start=start, end=end)
    gross_revenue = totals.get(ledger_service.TYPE_INCOME, Decimal("0.00"))
    operating_expenses = abs(totals.get(ledger_service.TYPE_EXPENSE, Decimal("0.00")))

    sales_window = [
        Sale.business_unit_id == business_unit_id,
        Sale.sale_date >= start,
        Sale.sale_date < end,
    ]
    cogs = _money(
        db.session.query(func.coalesce(func.sum(SaleItem.quantity_sold * SaleItem.cost_at_sale), 0))
        .join(Sale, SaleItem.sale_id == Sale.id)
        .filter(*sales_window)
        .scalar()
    )

    gross_profit = gross_revenue - cogs
    net_profit = gross_profit - operating_expenses

    receivable = _money(
        db.session.query(func.coalesce(func.sum(Customer.account_balance), 0))
        .filter(Customer.business_unit_id == business_unit_id, Customer.account_balance > 0)
        .scalar()
    )

    top_rows = (
        db.session.query(
            Product.name,
            func.sum(SaleItem.quantity_sold),
            func.sum(SaleItem.quantity_sold * SaleItem.price_at_sale),
            func.sum(SaleItem.quantity_sold * SaleItem.cost_at_sale),
        )
        .join(Sale, SaleItem.sale_id == Sale.id)
        .join(Product, SaleItem.product_id == Product.id)
        .filter(*sales_window)
        .group_by(Product.name)
        .all()
    )
    top_products = []
    for name, units, revenue, cost in top_rows:
        revenue, cost = _money(revenue), _money(cost)
        top_products.append({
            "product_name": name,
            "units_sold": str(units),
            "revenue": str(revenue),
            "cogs": str(cost),
            "profit": str(revenue - cost),
        })
    top_products.sort(key=lambda row: Decimal(row["profit"]), reverse=True)

    margin = Decimal("0.00")
    if gross_revenue > 0:
        margin = quantize_money(net_profit / gross_revenue * 100)

    return {
        "profit_and_loss": {
            "gross_revenue": str(gross_revenue),
            "cost_of_goods_sold": str(cogs),
            "gross_profit": str(quantize_money(gross_profit)),
            "operating_expenses": str(operating_expenses),
            "net_profit": str(quantize_money(net_profit)),
        },
        "key_metrics": {
            "accounts_receivable": str(receivable),
            "profit_margin": str(margin),
        },
        "top_selling_products": top_products[:top_n] if top_n else top_products,
    }

