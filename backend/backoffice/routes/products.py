# backend/backoffice/routes/products.py
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..extensions import db
from ..models import Product
from ..services import inventory_service, reporting_service
from ..validation import require_fields


products_bp = Blueprint("products", __name__, url_prefix="/api/products")

EDITABLE_FIELDS = ("name", "sku", "unit_type", "selling_price", "cost_price", "is_active")


@products_bp.get("")
def list_products():
    business_unit_id = request.args.get("business_unit_id", type=int)
    if not business_unit_id:
        return jsonify({"error": "business_unit_id is required"}), 400
    products = (
        db.session.query(Product)
        .filter_by(business_unit_id=business_unit_id)
        .order_by(Product.name)
        .all()
    )
    return jsonify([p.to_dict() for p in products]), 200


@products_bp.post("")
def create_product():
    """
    Request body:
    {
        "business_unit_id": int,
        "name": str,
        "selling_price": decimal,
        "cost_price": decimal (optional opening WAC),
        "quantity_on_hand": decimal (optional opening stock),
        "unit_type": str (optional, default EACH),
        "sku": str (optional)
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "business_unit_id", "name", "selling_price")
        product = inventory_service.create_product(
            business_unit_id=data["business_unit_id"],
            name=data["name"],
            selling_price=data["selling_price"],
            cost_price=data.get("cost_price", 0),
            quantity_on_hand=data.get("quantity_on_hand", 0),
            unit_type=data.get("unit_type", "EACH"),
            sku=data.get("sku"),
        )
        return jsonify(product.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        return jsonify(reporting_service.product_position(product_id)), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.patch("/<int:product_id>")
def edit_product(product_id: int):
    """Master data only. quantity_on_hand changes through stock movements."""
    data = request.get_json(silent=True) or {}
    fields = {k: data[k] for k in EDITABLE_FIELDS if k in data}
    try:
        product = inventory_service.edit_product(product_id, **fields)
        return jsonify(product.to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to edit product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/recipe")
def get_recipe(product_id: int):
    try:
        inventory_service.get_product(product_id)
        lines = inventory_service.get_recipe(product_id)
        return jsonify([line.to_dict() for line in lines]), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.put("/<int:product_id>/recipe")
def set_recipe(product_id: int):
    """
    Replace the bill of materials.

    Request body:
    {
        "lines": [{"ingredient_product_id": int, "quantity_required": decimal}]
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "lines")
        lines = inventory_service.set_recipe(product_id, data["lines"])
        return jsonify([line.to_dict() for line in lines]), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to set recipe for product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500
