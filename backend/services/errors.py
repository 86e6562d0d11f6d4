# backend/services/errors.py
"""Typed errors raised by the inventory engine.

Every error carries a stable ``code`` and a ``context`` dict so the HTTP
layer can report it without parsing messages. ``main.py`` maps each class
to a status code.
"""
from typing import Any, Dict


class InventoryError(Exception):
    code = "INVENTORY_ERROR"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code, **self.context}


class NotFound(InventoryError):
    """Entity missing, or owned by someone else (the two are indistinguishable)."""
    code = "NOT_FOUND"

    def __init__(self, entity: str):
        super().__init__(f"{entity} not found")
        self.entity = entity


class ValidationFailure(InventoryError):
    code = "VALIDATION_FAILURE"


class InsufficientStock(InventoryError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, current_stock: int, requested: int):
        super().__init__("Insufficient stock", currentStock=current_stock, requested=requested)
        self.current_stock = current_stock
        self.requested = requested


class AlreadyResolved(InventoryError):
    code = "ALREADY_RESOLVED"

    def __init__(self, alert_id: int):
        super().__init__("Alert is already resolved", alertId=alert_id)
        self.alert_id = alert_id


class GenerationExhausted(InventoryError):
    code = "GENERATION_EXHAUSTED"

    def __init__(self, attempts: int):
        super().__init__("Could not generate a unique SKU", attempts=attempts)
        self.attempts = attempts


class CategoryInUse(InventoryError):
    code = "CATEGORY_IN_USE"

    def __init__(self, product_count: int):
        super().__init__("Cannot delete category with associated products", productCount=product_count)
        self.product_count = product_count


class Conflict(InventoryError):
    code = "CONFLICT"


def is_violation(exc: Exception, *markers: str) -> bool:
    """True if a database IntegrityError names one of ``markers``.

    PostgreSQL reports the constraint name, SQLite the ``table.column``
    list of the violated unique index, so callers pass both.
    """
    message = str(getattr(exc, "orig", exc)).lower()
    # PostgreSQL appends the failing row, which can hold any column value
    message = message.split("detail:", 1)[0]
    return any(marker.lower() in message for marker in markers)
