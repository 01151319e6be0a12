"""
Scrapyard buying and bulk selling.

Buying pays the seller out of a safe at the product's current WAC per kg.
Each product's WAC is read exactly once, under its row lock, and that one
reading prices every line for that product, so the payout total and the
per-line amounts always agree.
"""

from __future__ import annotations

from decimal import Decimal

from ..errors import InsufficientFundsError, ValidationError
from ..extensions import db
from ..models import ScrapPurchase, ScrapSale
from ..validation import (
    optional_id,
    positive_amount,
    positive_quantity,
    quantize_money,
    require_id,
    require_lines,
)
from .concurrency import unit_of_work
from . import counterparty_service, inventory_service, ledger_service, treasury_service


def buy_scrap(
    *,
    business_unit_id: int,
    items: list[dict],
    safe_id: int,
    supplier_id: int | None = None,
    user_id: int | None = None,
) -> list[ScrapPurchase]:
    """
    Each item: {"product_id", "weight_kg"}.

    Raises:
        NotFoundError: unknown product, safe or supplier.
        InsufficientFundsError: the safe cannot cover the payout.
    """
    lines = [
        (require_id(item.get("product_id"), "product_id"), positive_quantity(item.get("weight_kg"), "weight_kg"))
        for item in require_lines(items, "items")
    ]
    supplier_id = optional_id(supplier_id, "supplier_id")
    business_unit_id = require_id(business_unit_id, "business_unit_id")

    with unit_of_work("scrap buy"):
        products = inventory_service.lock_products(
            [product_id for product_id, _ in lines], business_unit_id=business_unit_id
        )
        price_per_kg = {product_id: Decimal(p.cost_price) for product_id, p in products.items()}

        priced = [
            (product_id, weight, quantize_money(price_per_kg[product_id] * weight))
            for product_id, weight in lines
        ]
        total_payout = sum((payout for _, _, payout in priced), Decimal("0.00"))
        if total_payout <= 0:
            raise ValidationError("Scrap payout must be positive; check the product cost prices")

        supplier = counterparty_service.get_supplier(supplier_id) if supplier_id is not None else None
        safe = treasury_service.get_safe(safe_id, lock=True)
        if Decimal(safe.current_balance) < total_payout:
            raise InsufficientFundsError(safe.name, total_payout, Decimal(safe.current_balance))

        purchases = []
        for product_id, weight, payout in priced:
            purchase = ScrapPurchase(
                business_unit_id=business_unit_id,
                product_id=product_id,
                supplier_id=supplier_id,
                safe_id=safe.id,
                user_id=user_id,
                weight_kg=weight,
                price_per_kg=price_per_kg[product_id],
                payout_amount=payout,
            )
            db.session.add(purchase)
            purchases.append(purchase)
            inventory_service.receive_stock(products[product_id], weight, price_per_kg[product_id])
        db.session.flush()

        ref_ids = ",".join(str(p.id) for p in purchases)
        treasury_service.debit(
            safe, total_payout, treasury_service.MOVE_PAYOUT,
            description=f"Scrap Payout. Ref IDs: {ref_ids}", user_id=user_id,
            source_reference=f"scrap_purchase:{ref_ids}",
        )
        description = f"Scrap Payout from {safe.name}. Ref IDs: {ref_ids}"
        if supplier is not None:
            description += f" ({supplier.name})"
        ledger_service.append_transaction(
            business_unit_id=business_unit_id,
            amount=total_payout,
            type=ledger_service.TYPE_EXPENSE,
            description=description,
            source_reference=f"scrap_purchase:{ref_ids}",
            supplier_id=supplier_id,
            user_id=user_id,
        )
        return purchases


def sell_scrap(
    *,
    business_unit_id: int,
    product_id: int,
    weight_kg,
    revenue_amount,
    safe_id: int,
    buyer_id: int | None = None,
    invoice_number: str | None = None,
    payment_method: str = "EFT",
    user_id: int | None = None,
) -> ScrapSale:
    """
    Bulk sale of scrap to a buyer, paid into a safe.

    Raises:
        InsufficientStockError: less than ``weight_kg`` on hand.
    """
    weight = positive_quantity(weight_kg, "weight_kg")
    revenue = positive_amount(revenue_amount, "revenue_amount")
    safe_id = require_id(safe_id, "safe_id")
    buyer_id = optional_id(buyer_id, "buyer_id")
    business_unit_id = require_id(business_unit_id, "business_unit_id")
    product_id = require_id(product_id, "product_id")
    movement = treasury_service.SALE_MOVEMENTS.get((payment_method or "").upper())
    if movement is None:
        raise ValidationError("payment_method must be one of CASH, CARD, EFT")

    with unit_of_work("scrap sell"):
        product = inventory_service.get_product(product_id, business_unit_id=business_unit_id, lock=True)
        cost_at_sale = product.cost_price
        inventory_service.consume(product, weight)

        buyer = counterparty_service.get_customer(buyer_id) if buyer_id is not None else None
        safe = treasury_service.get_safe(safe_id, lock=True)
        sale = ScrapSale(
            business_unit_id=business_unit_id,
            product_id=product.id,
            buyer_id=buyer_id,
            safe_id=safe_id,
            user_id=user_id,
            weight_kg=weight,
            revenue_amount=revenue,
            cost_at_sale=cost_at_sale,
            invoice_number=invoice_number,
        )
        db.session.add(sale)
        db.session.flush()

        treasury_service.credit(
            safe, revenue, movement,
            description=f"Bulk scrap sale #{sale.id}", user_id=user_id,
            source_reference=f"scrap_sale:{sale.id}",
        )
        ledger_service.append_transaction(
            business_unit_id=business_unit_id,
            amount=revenue,
            type=ledger_service.TYPE_INCOME,
            description=(
                f"Bulk Scrap Sale. Invoice: {invoice_number or 'N/A'}. Ref Sale: {sale.id}"
                + (f" ({buyer.name})" if buyer is not None else "")
            ),
            source_reference=f"scrap_sale:{sale.id}",
            customer_id=buyer_id,
            user_id=user_id,
        )
        return sale
