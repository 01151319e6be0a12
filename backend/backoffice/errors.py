"""
Typed failures raised by the ledger core.

Every Unit-of-Work rolls back before one of these reaches the caller.
Boundary layers map them to HTTP status codes with ``status_code``.
"""
from __future__ import annotations

from decimal import Decimal


class LedgerError(Exception):
    """Base class for business failures raised by services."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = {
                k: (str(v) if isinstance(v, Decimal) else v) for k, v in self.details.items()
            }
        return body


class ValidationError(LedgerError):
    """Malformed or missing input; rejected before any mutation."""


class StateError(LedgerError):
    """Operation is not allowed in the entity's current workflow state."""


class NotFoundError(LedgerError):
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found", {"entity": entity, "id": entity_id})


class InsufficientFundsError(LedgerError):
    status_code = 409

    def __init__(self, safe_name: str, required: Decimal, available: Decimal):
        super().__init__(
            f"Insufficient funds in {safe_name}: required {required}, available {available}",
            {"safe": safe_name, "required": required, "available": available},
        )


class InsufficientStockError(LedgerError):
    status_code = 409

    def __init__(self, product_name: str, required: Decimal, on_hand: Decimal):
        super().__init__(
            f"Insufficient stock for {product_name}: required {required}, on hand {on_hand}",
            {"product": product_name, "required": required, "on_hand": on_hand},
        )
