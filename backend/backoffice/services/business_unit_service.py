from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import BusinessUnit
from ..validation import require_text
from .concurrency import unit_of_work


def create_business_unit(name: str, business_type: str, address: str | None = None, phone: str | None = None) -> BusinessUnit:
    name = require_text(name, "name", max_length=128)
    business_type = require_text(business_type, "business_type", max_length=32).upper()

    with unit_of_work("create business unit"):
        if db.session.query(BusinessUnit).filter_by(name=name).first():
            raise ValidationError(f"A business unit named {name} already exists")
        unit = BusinessUnit(name=name, business_type=business_type, address=address, phone=phone)
        db.session.add(unit)
        db.session.flush()
        return unit


def get_business_unit(business_unit_id: int) -> BusinessUnit:
    unit = db.session.get(BusinessUnit, business_unit_id)
    if unit is None:
        raise NotFoundError("Business unit", business_unit_id)
    return unit


def list_business_units() -> list[BusinessUnit]:
    return db.session.query(BusinessUnit).order_by(BusinessUnit.name).all()
