# backend/backoffice/routes/counterparties.py
"""
Customer and supplier accounts: creation, balances and payments.
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..extensions import db
from ..models import Customer, Supplier
from ..services import counterparty_service, reporting_service
from ..validation import require_fields


counterparties_bp = Blueprint("counterparties", __name__, url_prefix="/api")


# =============================================================================
# CUSTOMERS
# =============================================================================

@counterparties_bp.get("/customers")
def list_customers():
    business_unit_id = request.args.get("business_unit_id", type=int)
    q = db.session.query(Customer)
    if business_unit_id:
        q = q.filter_by(business_unit_id=business_unit_id)
    return jsonify([c.to_dict() for c in q.order_by(Customer.name).all()]), 200


@counterparties_bp.post("/customers")
def create_customer():
    data = request.get_json(silent=True)
    try:
        require_fields(data, "business_unit_id", "name")
        customer = counterparty_service.create_customer(
            business_unit_id=data["business_unit_id"],
            name=data["name"],
            phone_number=data.get("phone_number"),
            email=data.get("email"),
        )
        return jsonify(customer.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@counterparties_bp.get("/customers/<int:customer_id>")
def get_customer_balance(customer_id: int):
    try:
        return jsonify(reporting_service.customer_balance(customer_id)), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@counterparties_bp.post("/customers/<int:customer_id>/payments")
def apply_customer_payment(customer_id: int):
    """
    Receive a payment against the customer's on-account sales.

    Request body:
    {
        "safe_id": int,
        "amount": decimal,
        "allocations": [{"sale_id": int, "amount_applied": decimal}] (optional, oldest first when omitted),
        "business_unit_id": int (optional, defaults to the customer's unit),
        "notes": str (optional),
        "user_id": int (optional)
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "safe_id", "amount")
        payment = counterparty_service.apply_payment(
            customer_id=customer_id,
            safe_id=data["safe_id"],
            amount=data["amount"],
            business_unit_id=data.get("business_unit_id"),
            allocations=data.get("allocations"),
            notes=data.get("notes"),
            user_id=data.get("user_id"),
        )
        return jsonify(payment.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Customer payment failed")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# SUPPLIERS
# =============================================================================

@counterparties_bp.get("/suppliers")
def list_suppliers():
    business_unit_id = request.args.get("business_unit_id", type=int)
    q = db.session.query(Supplier)
    if business_unit_id:
        q = q.filter_by(business_unit_id=business_unit_id)
    return jsonify([s.to_dict() for s in q.order_by(Supplier.name).all()]), 200


@counterparties_bp.post("/suppliers")
def create_supplier():
    data = request.get_json(silent=True)
    try:
        require_fields(data, "business_unit_id", "name")
        supplier = counterparty_service.create_supplier(
            business_unit_id=data["business_unit_id"],
            name=data["name"],
            contact_person=data.get("contact_person"),
            phone_number=data.get("phone_number"),
            email=data.get("email"),
        )
        return jsonify(supplier.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return jsonify({"error": "Internal server error"}), 500


@counterparties_bp.get("/suppliers/<int:supplier_id>")
def get_supplier_balance(supplier_id: int):
    try:
        return jsonify(reporting_service.supplier_balance(supplier_id)), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@counterparties_bp.post("/suppliers/<int:supplier_id>/payments")
def pay_supplier(supplier_id: int):
    """
    Request body:
    {
        "safe_id": int,
        "amount": decimal,
        "allocations": [{"purchase_order_id": int, "amount_applied": decimal}] (optional),
        "notes": str (optional),
        "user_id": int (optional)
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "safe_id", "amount")
        payment = counterparty_service.pay_supplier(
            supplier_id=supplier_id,
            safe_id=data["safe_id"],
            amount=data["amount"],
            allocations=data.get("allocations"),
            notes=data.get("notes"),
            user_id=data.get("user_id"),
        )
        return jsonify(payment.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Supplier payment failed")
        return jsonify({"error": "Internal server error"}), 500
