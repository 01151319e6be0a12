from __future__ import annotations

from decimal import Decimal

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import BusinessUnit, StockTake, StockTakeItem
from ..validation import non_negative_quantity, quantize_money, require_id, require_lines
from .concurrency import unit_of_work
from . import inventory_service, ledger_service


def record_stock_take(
    *,
    business_unit_id: int,
    items: list[dict],
    notes: str | None = None,
    user_id: int | None = None,
) -> StockTake:
    """
    Apply a physical count.

    Each item: {"product_id", "counted_qty"}. Every counted product is set to
    its counted quantity and the net variance, valued at each product's
    pre-take WAC, is booked as one STOCK_GAIN (positive) or EXPENSE (negative)
    entry. A take with zero net variance writes no ledger entry.
    """
    counts = []
    seen = set()
    for item in require_lines(items, "items"):
        product_id = require_id(item.get("product_id"), "product_id")
        if product_id in seen:
            raise ValidationError(f"Product {product_id} counted twice in one stock take")
        seen.add(product_id)
        counts.append((product_id, non_negative_quantity(item.get("counted_qty"), "counted_qty")))
    business_unit_id = require_id(business_unit_id, "business_unit_id")

    with unit_of_work("stock take"):
        if db.session.get(BusinessUnit, business_unit_id) is None:
            raise NotFoundError("Business unit", business_unit_id)

        products = inventory_service.lock_products(
            [product_id for product_id, _ in counts], business_unit_id=business_unit_id
        )

        take = StockTake(business_unit_id=business_unit_id, user_id=user_id, notes=notes)
        db.session.add(take)
        db.session.flush()

        total = Decimal("0.00")
        for product_id, counted in counts:
            variance = inventory_service.set_counted(products[product_id], counted)
            db.session.add(StockTakeItem(
                stock_take_id=take.id,
                product_id=product_id,
                system_qty=variance.system_qty,
                counted_qty=variance.counted_qty,
                variance_qty=variance.variance_qty,
                cost_at_time=variance.cost_at_time,
                variance_value=variance.variance_value,
            ))
            total += variance.variance_value

        take.total_variance_value = quantize_money(total)

        if total != 0:
            gain = total > 0
            ledger_service.append_transaction(
                business_unit_id=business_unit_id,
                amount=abs(total),
                type=ledger_service.TYPE_STOCK_GAIN if gain else ledger_service.TYPE_EXPENSE,
                description=(
                    f"Stock Gain from Stock Take #{take.id}" if gain
                    else f"Stock Loss/Shrinkage from Stock Take #{take.id}"
                ),
                source_reference=f"stock_take:{take.id}",
                user_id=user_id,
            )
        return take


def get_stock_take(stock_take_id: int) -> StockTake:
    take = db.session.get(StockTake, stock_take_id)
    if take is None:
        raise NotFoundError("Stock take", stock_take_id)
    return take
