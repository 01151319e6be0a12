# Overview: Inventory valuation engine; on-hand quantities and weighted-average cost.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import BillOfMaterialsLine, BusinessUnit, Product
from ..validation import (
    non_negative_cost,
    non_negative_quantity,
    positive_quantity,
    quantize_cost,
    quantize_money,
    quantize_quantity,
    require_id,
    require_lines,
    require_text,
)
from .concurrency import lock_for_update, lock_rows, unit_of_work
"""
Inventory Invariants (authoritative)

Stored state:
- Product.quantity_on_hand is the mutable on-hand quantity.
- Product.cost_price is the weighted-average cost (WAC), 4 decimal places.

Business invariants:
- On-hand quantity may never go negative through consume().
- Inbound movements (purchase receipt, mix output, scrap buy, inbound
  internal transfer) go through receive_stock() and blend WAC as:
    new = (old_qty * old_wac + recv_qty * unit_cost) / (old_qty + recv_qty)
  and new = unit_cost when old_qty + recv_qty == 0.
- Outbound movements never change WAC.
- set_counted() (stock take) assigns the counted quantity directly, without
  WAC blending, and values the variance at the pre-take WAC.

Locking:
- Every function that mutates a Product expects the caller to have loaded it
  through get_product(lock=True) / lock_products() inside a unit_of_work.
"""


def _dec(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class StockVariance:
    system_qty: Decimal
    counted_qty: Decimal
    variance_qty: Decimal
    cost_at_time: Decimal
    variance_value: Decimal


@dataclass(frozen=True)
class IngredientUse:
    product: Product
    quantity: Decimal
    unit_cost: Decimal
    cost: Decimal


@dataclass(frozen=True)
class RecipeConsumption:
    quantity: Decimal
    ingredients: list[IngredientUse]
    total_cost: Decimal
    new_wac: Decimal


# =============================================================================
# LOOKUPS
# =============================================================================

def get_product(product_id: int, *, business_unit_id: int | None = None, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError("Product", product_id)
    if business_unit_id is not None and product.business_unit_id != business_unit_id:
        raise ValidationError(
            f"Product {product.name} does not belong to business unit {business_unit_id}"
        )
    return product


def lock_products(product_ids, *, business_unit_id: int | None = None) -> dict[int, Product]:
    """Lock every product in ``product_ids`` (ascending id order) or raise NotFoundError."""
    products = lock_rows(Product, product_ids)
    for product_id in product_ids:
        if product_id not in products:
            raise NotFoundError("Product", product_id)
    if business_unit_id is not None:
        for product in products.values():
            if product.business_unit_id != business_unit_id:
                raise ValidationError(
                    f"Product {product.name} does not belong to business unit {business_unit_id}"
                )
    return products


# =============================================================================
# PRODUCT MASTER DATA
# =============================================================================

def _create_product(
    *,
    business_unit_id: int,
    name: str,
    selling_price,
    cost_price=0,
    quantity_on_hand=0,
    unit_type: str = "EACH",
    sku: str | None = None,
) -> Product:
    """Create a product with optional opening stock at an opening cost."""
    business_unit_id = require_id(business_unit_id, "business_unit_id")
    if db.session.get(BusinessUnit, business_unit_id) is None:
        raise NotFoundError("Business unit", business_unit_id)

    product = Product(
        business_unit_id=business_unit_id,
        name=require_text(name, "name"),
        sku=sku,
        unit_type=unit_type or "EACH",
        selling_price=quantize_money(non_negative_cost(selling_price, "selling_price")),
        cost_price=non_negative_cost(cost_price, "cost_price"),
        quantity_on_hand=non_negative_quantity(quantity_on_hand, "quantity_on_hand"),
    )
    db.session.add(product)
    db.session.flush()
    return product


def update_product_details(product: Product, **fields) -> Product:
    """
    Explicit edit of product details.

    This is the only path besides receive_stock() that writes cost_price,
    and it never touches quantity_on_hand.
    """
    if "name" in fields:
        product.name = require_text(fields["name"], "name")
    if "sku" in fields:
        product.sku = fields["sku"]
    if "unit_type" in fields:
        product.unit_type = require_text(fields["unit_type"], "unit_type", max_length=16)
    if "selling_price" in fields:
        product.selling_price = quantize_money(non_negative_cost(fields["selling_price"], "selling_price"))
    if "cost_price" in fields:
        product.cost_price = non_negative_cost(fields["cost_price"], "cost_price")
    if "is_active" in fields:
        product.is_active = bool(fields["is_active"])
    return product


# =============================================================================
# VALUATION
# =============================================================================

def weighted_average_cost(old_qty, old_wac, received_qty, received_total_cost) -> Decimal:
    """
    Blend received stock into an existing pool.

    ``received_total_cost`` is the full cost of the received quantity, so mix
    output can be absorbed at its exact ingredient cost.
    """
    old_qty = _dec(old_qty)
    received_qty = _dec(received_qty)
    new_qty = old_qty + received_qty
    if new_qty == 0:
        if received_qty == 0:
            return quantize_cost(_dec(old_wac))
        return quantize_cost(_dec(received_total_cost) / received_qty)
    return quantize_cost((old_qty * _dec(old_wac) + _dec(received_total_cost)) / new_qty)


def _absorb(product: Product, quantity: Decimal, total_cost: Decimal) -> Decimal:
    old_qty = _dec(product.quantity_on_hand)
    new_wac = weighted_average_cost(old_qty, product.cost_price, quantity, total_cost)
    product.quantity_on_hand = quantize_quantity(old_qty + quantity)
    product.cost_price = new_wac
    return new_wac


def receive_stock(product: Product, quantity, unit_cost) -> Decimal:
    """
    Add ``quantity`` at ``unit_cost`` and return the product's new WAC.
    """
    quantity = positive_quantity(quantity, "quantity")
    unit_cost = non_negative_cost(unit_cost, "unit_cost")
    return _absorb(product, quantity, quantity * unit_cost)


def consume(product: Product, quantity) -> Decimal:
    """
    Remove ``quantity`` from on-hand stock.

    Returns the cost consumed (quantity x current WAC). WAC is unchanged.

    Raises:
        InsufficientStockError: on-hand is below the requested quantity.
    """
    quantity = positive_quantity(quantity, "quantity")
    on_hand = _dec(product.quantity_on_hand)
    if on_hand < quantity:
        raise InsufficientStockError(product.name, quantity, on_hand)
    product.quantity_on_hand = quantize_quantity(on_hand - quantity)
    return quantize_money(quantity * _dec(product.cost_price))


def set_counted(product: Product, counted_qty) -> StockVariance:
    """
    Stock take: assert ground truth.

    Replaces quantity_on_hand with the counted value directly and values the
    variance at the pre-take WAC. WAC itself is not changed.
    """
    counted = non_negative_quantity(counted_qty, "counted_qty")
    system_qty = _dec(product.quantity_on_hand)
    cost_at_time = _dec(product.cost_price)
    variance_qty = counted - system_qty
    product.quantity_on_hand = counted
    return StockVariance(
        system_qty=system_qty,
        counted_qty=counted,
        variance_qty=variance_qty,
        cost_at_time=cost_at_time,
        variance_value=quantize_money(variance_qty * cost_at_time),
    )


# =============================================================================
# RECIPES (BILL OF MATERIALS)
# =============================================================================

def get_recipe(finished_good_id: int) -> list[BillOfMaterialsLine]:
    return (
        db.session.query(BillOfMaterialsLine)
        .filter_by(finished_good_product_id=finished_good_id)
        .order_by(BillOfMaterialsLine.ingredient_product_id)
        .all()
    )


def _set_recipe(finished_good_id: int, lines: list[dict]) -> list[BillOfMaterialsLine]:
    """
    Replace the recipe of a finished good.

    Each line: {"ingredient_product_id": int, "quantity_required": number}.
    """
    finished_good = get_product(finished_good_id)
    if not lines:
        raise ValidationError("A recipe needs at least one ingredient")

    seen: set[int] = set()
    parsed = []
    for line in require_lines(lines, "lines"):
        ingredient_id = require_id(line.get("ingredient_product_id"), "ingredient_product_id")
        if ingredient_id == finished_good.id:
            raise ValidationError("A product cannot be an ingredient of itself")
        if ingredient_id in seen:
            raise ValidationError(f"Ingredient {ingredient_id} listed twice")
        seen.add(ingredient_id)
        get_product(ingredient_id)
        parsed.append((ingredient_id, positive_quantity(line.get("quantity_required"), "quantity_required")))

    for existing in get_recipe(finished_good.id):
        db.session.delete(existing)
    db.session.flush()

    created = []
    for ingredient_id, qty in parsed:
        bom = BillOfMaterialsLine(
            finished_good_product_id=finished_good.id,
            ingredient_product_id=ingredient_id,
            quantity_required=qty,
        )
        db.session.add(bom)
        created.append(bom)
    db.session.flush()
    return created


def consume_recipe(finished_good: Product, target_qty) -> RecipeConsumption:
    """
    Mix ``target_qty`` units of a finished good from its recipe.

    All ingredient rows are locked and checked before any is decremented, so
    a shortfall on any ingredient leaves every quantity unchanged. The summed
    ingredient cost is then absorbed into the finished good's WAC.

    Raises:
        ValidationError: the product has no recipe.
        InsufficientStockError: any ingredient is short.
    """
    target_qty = positive_quantity(target_qty, "quantity")
    recipe = get_recipe(finished_good.id)
    if not recipe:
        raise ValidationError(f"No recipe found for {finished_good.name}. Cannot mix.")

    ingredients = lock_products([line.ingredient_product_id for line in recipe])

    required: list[tuple[Product, Decimal]] = []
    for line in recipe:
        ingredient = ingredients[line.ingredient_product_id]
        needed = quantize_quantity(_dec(line.quantity_required) * target_qty)
        on_hand = _dec(ingredient.quantity_on_hand)
        if on_hand < needed:
            raise InsufficientStockError(ingredient.name, needed, on_hand)
        required.append((ingredient, needed))

    uses = []
    total_cost = Decimal("0")
    for ingredient, needed in required:
        unit_cost = _dec(ingredient.cost_price)
        cost = needed * unit_cost
        ingredient.quantity_on_hand = quantize_quantity(_dec(ingredient.quantity_on_hand) - needed)
        total_cost += cost
        uses.append(IngredientUse(ingredient, needed, unit_cost, quantize_money(cost)))

    new_wac = _absorb(finished_good, target_qty, total_cost)
    return RecipeConsumption(quantity=target_qty, ingredients=uses, total_cost=quantize_money(total_cost), new_wac=new_wac)


def stock_value(product: Product) -> Decimal:
    return quantize_money(_dec(product.quantity_on_hand) * _dec(product.cost_price))


def create_product(**fields) -> Product:
    with unit_of_work("create product"):
        return _create_product(**fields)


def edit_product(product_id: int, **fields) -> Product:
    with unit_of_work("edit product"):
        return update_product_details(get_product(product_id, lock=True), **fields)


def set_recipe(finished_good_id: int, lines: list[dict]) -> list[BillOfMaterialsLine]:
    with unit_of_work("set recipe"):
        return _set_recipe(finished_good_id, lines)
