from decimal import Decimal

import pytest

from backoffice.errors import InsufficientStockError, ValidationError
from backoffice.models import MaterialMix
from backoffice.services import inventory_service, ledger_service, mixing_service, stocktake_service
from backoffice.services.concurrency import unit_of_work


# =============================================================================
# WEIGHTED AVERAGE COST
# =============================================================================

def test_weighted_average_blends_two_receipts():
    assert inventory_service.weighted_average_cost(10, Decimal("5"), 10, Decimal("70")) == Decimal("6.0000")


def test_weighted_average_empty_pool_takes_receipt_cost():
    assert inventory_service.weighted_average_cost(0, Decimal("3"), 5, Decimal("40")) == Decimal("8.0000")


def test_weighted_average_rounds_half_up_to_four_places():
    # (3 * 1 + 4) / 6 = 1.16666...
    assert inventory_service.weighted_average_cost(3, Decimal("1"), 3, Decimal("4")) == Decimal("1.1667")


def test_receive_stock_updates_quantity_and_wac(retail, make_product):
    cement = make_product(retail, "Cement 50kg", qty=10, cost="5")

    with unit_of_work("test receipt"):
        locked = inventory_service.get_product(cement.id, lock=True)
        new_wac = inventory_service.receive_stock(locked, 10, "7")

    assert new_wac == Decimal("6")
    cement = inventory_service.get_product(cement.id)
    assert cement.quantity_on_hand == Decimal("20")
    assert cement.cost_price == Decimal("6")
    assert inventory_service.stock_value(cement) == Decimal("120.00")


def test_consume_leaves_wac_and_rejects_shortfall(retail, make_product):
    sand = make_product(retail, "Sand", qty=5, cost="2.50")

    with unit_of_work("test consume"):
        locked = inventory_service.get_product(sand.id, lock=True)
        cost = inventory_service.consume(locked, 2)
    assert cost == Decimal("5.00")

    with pytest.raises(InsufficientStockError) as exc:
        with unit_of_work("test overdraw"):
            inventory_service.consume(inventory_service.get_product(sand.id, lock=True), 4)
    assert exc.value.details["on_hand"] == Decimal("3")

    sand = inventory_service.get_product(sand.id)
    assert sand.quantity_on_hand == Decimal("3")
    assert sand.cost_price == Decimal("2.50")


def test_edit_product_never_touches_quantity(retail, make_product):
    paint = make_product(retail, "Primer", qty=4, cost="30")
    inventory_service.edit_product(paint.id, name="Primer 5L", cost_price="32")

    paint = inventory_service.get_product(paint.id)
    assert paint.name == "Primer 5L"
    assert paint.cost_price == Decimal("32")
    assert paint.quantity_on_hand == Decimal("4")


def test_product_of_another_unit_is_rejected(retail, scrapyard, make_product):
    copper = make_product(scrapyard, "Copper", qty=1, cost="50")
    with pytest.raises(ValidationError):
        inventory_service.get_product(copper.id, business_unit_id=retail.id)


# =============================================================================
# STOCK TAKE
# =============================================================================

def test_stock_take_shrinkage_books_one_expense(retail, make_product):
    nails = make_product(retail, "Nails", qty=50, cost="2")

    take = stocktake_service.record_stock_take(
        business_unit_id=retail.id,
        items=[{"product_id": nails.id, "counted_qty": 45}],
    )

    assert take.total_variance_value == Decimal("-10.00")
    item = take.items[0]
    assert item.system_qty == Decimal("50")
    assert item.variance_qty == Decimal("-5")
    assert item.cost_at_time == Decimal("2")

    entries = ledger_service.find_by_source(f"stock_take:{take.id}")
    assert [(e.type, e.amount) for e in entries] == [("EXPENSE", Decimal("10.00"))]
    assert inventory_service.get_product(nails.id).quantity_on_hand == Decimal("45")


def test_stock_take_gain_and_nets_across_lines(retail, make_product):
    nails = make_product(retail, "Nails", qty=50, cost="2")
    screws = make_product(retail, "Screws", qty=10, cost="1")

    take = stocktake_service.record_stock_take(
        business_unit_id=retail.id,
        items=[
            {"product_id": nails.id, "counted_qty": 52},
            {"product_id": screws.id, "counted_qty": 9},
        ],
    )

    # +2 * 2 - 1 * 1
    entries = ledger_service.find_by_source(f"stock_take:{take.id}")
    assert [(e.type, e.amount) for e in entries] == [("STOCK_GAIN", Decimal("3.00"))]


def test_stock_take_without_variance_writes_no_entry(retail, make_product):
    nails = make_product(retail, "Nails", qty=50, cost="2")
    take = stocktake_service.record_stock_take(
        business_unit_id=retail.id, items=[{"product_id": nails.id, "counted_qty": 50}]
    )
    assert ledger_service.find_by_source(f"stock_take:{take.id}") == []


def test_stock_take_rejects_duplicate_product(retail, make_product):
    nails = make_product(retail, "Nails", qty=50, cost="2")
    with pytest.raises(ValidationError):
        stocktake_service.record_stock_take(
            business_unit_id=retail.id,
            items=[{"product_id": nails.id, "counted_qty": 1}, {"product_id": nails.id, "counted_qty": 2}],
        )


# =============================================================================
# RECIPES AND MIXING
# =============================================================================

@pytest.fixture
def paint_recipe(paint_shop, make_product):
    base = make_product(paint_shop, "White Base", qty=10, cost="4", unit_type="L")
    tint = make_product(paint_shop, "Red Tint", qty=1, cost="20", unit_type="L")
    mixed = make_product(paint_shop, "Signal Red", unit_type="L")
    inventory_service.set_recipe(mixed.id, [
        {"ingredient_product_id": base.id, "quantity_required": "2"},
        {"ingredient_product_id": tint.id, "quantity_required": "0.5"},
    ])
    return base, tint, mixed


def test_mix_consumes_ingredients_and_absorbs_cost(paint_shop, paint_recipe):
    base, tint, mixed = paint_recipe

    record = mixing_service.mix(business_unit_id=paint_shop.id, finished_good_id=mixed.id, quantity=2)

    assert record.total_cost == Decimal("36.00")
    assert inventory_service.get_product(base.id).quantity_on_hand == Decimal("6")
    assert inventory_service.get_product(tint.id).quantity_on_hand == Decimal("0")
    mixed = inventory_service.get_product(mixed.id)
    assert mixed.quantity_on_hand == Decimal("2")
    assert mixed.cost_price == Decimal("18")

    entries = ledger_service.find_by_source(f"paint_mix:{record.id}")
    assert [(e.type, e.amount) for e in entries] == [("COGS_ADJUSTMENT", Decimal("36.00"))]


def test_mix_is_all_or_nothing(db_session, paint_shop, paint_recipe):
    base, tint, mixed = paint_recipe

    # needs 6 base (available) and 1.5 tint (only 1 on hand)
    with pytest.raises(InsufficientStockError):
        mixing_service.mix(business_unit_id=paint_shop.id, finished_good_id=mixed.id, quantity=3)

    assert inventory_service.get_product(base.id).quantity_on_hand == Decimal("10")
    assert inventory_service.get_product(tint.id).quantity_on_hand == Decimal("1")
    assert inventory_service.get_product(mixed.id).quantity_on_hand == Decimal("0")
    assert db_session.query(MaterialMix).count() == 0
    assert ledger_service.list_transactions(paint_shop.id, type="COGS_ADJUSTMENT") == []


def test_mix_without_recipe_is_rejected(paint_shop, make_product):
    plain = make_product(paint_shop, "Thinners", qty=3, cost="9")
    with pytest.raises(ValidationError):
        mixing_service.mix(business_unit_id=paint_shop.id, finished_good_id=plain.id, quantity=1)


def test_recipe_rejects_self_reference(paint_shop, make_product):
    mixed = make_product(paint_shop, "Signal Red")
    with pytest.raises(ValidationError):
        inventory_service.set_recipe(mixed.id, [{"ingredient_product_id": mixed.id, "quantity_required": 1}])


def test_set_recipe_replaces_previous_lines(paint_recipe):
    base, tint, mixed = paint_recipe
    inventory_service.set_recipe(mixed.id, [{"ingredient_product_id": base.id, "quantity_required": "1"}])

    lines = inventory_service.get_recipe(mixed.id)
    assert [(line.ingredient_product_id, line.quantity_required) for line in lines] == [(base.id, Decimal("1"))]
