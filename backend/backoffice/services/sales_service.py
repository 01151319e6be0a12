"""
Point-of-sale processing.

One call to process_sale() is one unit of work:

    lock products -> snapshot cost_at_sale -> decrement stock -> sale + items
    -> INCOME entry -> credit safe (paid) | increase receivable (on account)

Prices are VAT-exclusive; VAT is added per line at the configured VAT_RATE
and the stored total is VAT-inclusive.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import BusinessUnit, Sale, SaleItem
from ..validation import (
    non_negative_cost,
    optional_id,
    positive_quantity,
    quantize_money,
    require_id,
    require_lines,
)
from .concurrency import unit_of_work
from . import counterparty_service, inventory_service, ledger_service, treasury_service


PAYMENT_METHODS = ("CASH", "CARD", "EFT", "ON_ACCOUNT")


def _vat_rate() -> Decimal:
    return Decimal(str(current_app.config.get("VAT_RATE", "0.15")))


def _parse_cart(lines) -> list[dict]:
    parsed = []
    for line in require_lines(lines, "lines"):
        unit_price = line.get("unit_price")
        parsed.append({
            "product_id": require_id(line.get("product_id"), "product_id"),
            "quantity": positive_quantity(line.get("quantity"), "quantity"),
            "unit_price": None if unit_price is None else quantize_money(non_negative_cost(unit_price, "unit_price")),
        })
    return parsed


def process_sale(
    *,
    business_unit_id: int,
    lines: list[dict],
    payment_method: str,
    customer_id: int | None = None,
    safe_id: int | None = None,
    user_id: int | None = None,
) -> Sale:
    """
    Sell a cart.

    Each line: {"product_id", "quantity", "unit_price" (optional, defaults to
    the product's selling price)}.

    CASH / CARD / EFT sales need ``safe_id`` and are Paid in full. ON_ACCOUNT
    sales need a customer and leave the whole total outstanding; a free cart
    is Paid at once.

    Raises:
        ValidationError: malformed cart or payment details.
        NotFoundError: unknown business unit, product, safe or customer.
        InsufficientStockError: any line exceeds on-hand stock.
    """
    method = (payment_method or "").upper()
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")
    cart = _parse_cart(lines)
    business_unit_id = require_id(business_unit_id, "business_unit_id")
    customer_id = optional_id(customer_id, "customer_id")
    safe_id = optional_id(safe_id, "safe_id")

    on_account = method == "ON_ACCOUNT"
    if on_account and customer_id is None:
        raise ValidationError("A customer must be assigned to the sale to process it on account.")
    if not on_account and safe_id is None:
        raise ValidationError(f"safe_id is required for {method} sales")

    vat_rate = _vat_rate()

    with unit_of_work("sale"):
        if db.session.get(BusinessUnit, business_unit_id) is None:
            raise NotFoundError("Business unit", business_unit_id)

        products = inventory_service.lock_products(
            [line["product_id"] for line in cart], business_unit_id=business_unit_id
        )

        items = []
        subtotal = Decimal("0.00")
        total_vat = Decimal("0.00")
        for line in cart:
            product = products[line["product_id"]]
            cost_at_sale = product.cost_price
            inventory_service.consume(product, line["quantity"])

            price = line["unit_price"] if line["unit_price"] is not None else Decimal(product.selling_price)
            line_net = quantize_money(price * line["quantity"])
            line_vat = quantize_money(line_net * vat_rate)
            subtotal += line_net
            total_vat += line_vat
            items.append(SaleItem(
                product_id=product.id,
                quantity_sold=line["quantity"],
                price_at_sale=price,
                cost_at_sale=cost_at_sale,
                vat_amount=line_vat,
            ))

        total = quantize_money(subtotal + total_vat)
        sale = Sale(
            business_unit_id=business_unit_id,
            user_id=user_id,
            payment_method=method,
            safe_id=None if on_account else safe_id,
            total_amount=total,
            total_vat_amount=quantize_money(total_vat),
            amount_paid=Decimal("0.00") if on_account else total,
        )
        counterparty_service.settle_status(sale)
        db.session.add(sale)
        db.session.flush()
        for item in items:
            item.sale_id = sale.id
            db.session.add(item)

        ledger_service.append_transaction(
            business_unit_id=business_unit_id,
            amount=total,
            type=ledger_service.TYPE_INCOME,
            description=f"Sale #{sale.id} via {method}",
            source_reference=f"sale:{sale.id}",
            user_id=user_id,
        )

        if on_account:
            customer = counterparty_service.get_customer(customer_id, lock=True)
            sale.customer_id = customer.id
            if total > 0:
                counterparty_service.increase_receivable(customer, total)
        else:
            if customer_id is not None:
                sale.customer_id = counterparty_service.get_customer(customer_id).id
            safe = treasury_service.get_safe(safe_id, lock=True)
            if total > 0:
                treasury_service.credit(
                    safe, total, treasury_service.SALE_MOVEMENTS[method],
                    description=f"Sale #{sale.id}", user_id=user_id, sale_id=sale.id,
                )

        current_app.logger.info("Sale %s processed: %s %s", sale.id, method, total)
        return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale", sale_id)
    return sale


def list_sales(business_unit_id: int, *, customer_id: int | None = None, status: str | None = None) -> list[Sale]:
    q = db.session.query(Sale).filter(Sale.business_unit_id == business_unit_id)
    if customer_id is not None:
        q = q.filter(Sale.customer_id == customer_id)
    if status:
        q = q.filter(Sale.payment_status == status)
    return q.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()
