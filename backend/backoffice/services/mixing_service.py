from __future__ import annotations

from ..errors import ValidationError
from ..extensions import db
from ..models import MaterialMix
from ..validation import require_id
from .concurrency import unit_of_work
from . import inventory_service, ledger_service


def mix(
    *,
    business_unit_id: int,
    finished_good_id: int,
    quantity,
    user_id: int | None = None,
) -> MaterialMix:
    """
    Produce ``quantity`` units of a finished good from its recipe.

    Ingredients are consumed all-or-nothing; the ingredient cost is absorbed
    into the finished good's WAC and booked as one COGS_ADJUSTMENT entry.
    """
    finished_good_id = require_id(finished_good_id, "finished_good_id")
    business_unit_id = require_id(business_unit_id, "business_unit_id")
    with unit_of_work("paint mix"):
        # finished good and ingredients in one ascending lock pass
        recipe = inventory_service.get_recipe(finished_good_id)
        locked = inventory_service.lock_products(
            [finished_good_id] + [line.ingredient_product_id for line in recipe]
        )
        finished_good = locked[finished_good_id]
        if finished_good.business_unit_id != business_unit_id:
            raise ValidationError(
                f"Product {finished_good.name} does not belong to business unit {business_unit_id}"
            )
        consumption = inventory_service.consume_recipe(finished_good, quantity)
        record = MaterialMix(
            business_unit_id=business_unit_id,
            finished_good_product_id=finished_good.id,
            quantity_mixed=consumption.quantity,
            total_cost=consumption.total_cost,
            wac_after=consumption.new_wac,
            user_id=user_id,
        )
        db.session.add(record)
        db.session.flush()

        ledger_service.append_transaction(
            business_unit_id=business_unit_id,
            amount=consumption.total_cost,
            type=ledger_service.TYPE_COGS_ADJUSTMENT,
            description=f"Mixed {record.quantity_mixed} units of {finished_good.name}",
            source_reference=f"paint_mix:{record.id}",
            user_id=user_id,
        )
        return record
