# backend/services/stock_ledger.py
import logging
from dataclasses import dataclass
from typing import Optional

from models.movement import Movement, MovementType
from models.product import Product
from services.alerts import AlertEvaluation, AlertManager
from services.errors import InsufficientStock, NotFound, ValidationFailure
from services.stores import MovementStore, ProductStore
from services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


@dataclass
class MovementResult:
    movement: Movement
    product: Product
    previous_stock: int
    current_stock: int
    alerts: AlertEvaluation


@dataclass
class ReversalResult:
    movement_id: int
    product: Product
    previous_stock: int
    current_stock: int
    alerts: AlertEvaluation


def _coerce_type(value) -> MovementType:
    try:
        return MovementType(value.value if isinstance(value, MovementType) else value)
    except ValueError:
        raise ValidationFailure("Invalid movement type", type=str(value))


def _check_quantity(quantity) -> int:
    # bool is an int subclass; True must not count as a quantity of 1
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationFailure("Quantity must be an integer", quantity=str(quantity))
    if quantity <= 0:
        raise ValidationFailure("Quantity must be greater than 0", quantity=quantity)
    return quantity


class StockLedger:
    """Applies and reverses movements against a product's current stock.

    Both operations lock the product row, write the movement change and the
    new stock, then re-evaluate alerts, all inside the caller's unit of
    work. A raised error leaves nothing behind once the unit of work rolls
    back.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        products: Optional[ProductStore] = None,
        movements: Optional[MovementStore] = None,
        alert_manager: Optional[AlertManager] = None,
    ):
        self.uow = uow
        self.products = products or ProductStore(uow.session)
        self.movements = movements or MovementStore(uow.session)
        self.alert_manager = alert_manager or AlertManager(uow)

    def apply_movement(self, product_id: int, type, quantity, reason: str, notes: Optional[str], actor_id: int) -> MovementResult:
        movement_type = _coerce_type(type)
        quantity = _check_quantity(quantity)
        if not reason or not reason.strip():
            raise ValidationFailure("Reason is required")

        product = self.products.get_owned(product_id, actor_id, lock=True)
        if product is None:
            raise NotFound("Product")

        previous_stock = product.current_stock
        if movement_type is MovementType.INBOUND:
            new_stock = previous_stock + quantity
        else:
            new_stock = previous_stock - quantity
            # An outbound movement may not empty the product either
            if new_stock <= 0:
                logger.info(
                    "rejected outbound of %d on product %s (stock %d)",
                    quantity, product.id, previous_stock,
                )
                raise InsufficientStock(previous_stock, quantity)

        movement = self.movements.add(Movement(
            product_id=product.id,
            user_id=actor_id,
            type=movement_type,
            quantity=quantity,
            reason=reason.strip(),
            notes=notes,
        ))
        product.current_stock = new_stock
        self.uow.flush()

        alerts = self.alert_manager.evaluate(product.id, new_stock, product.min_stock, actor_id)
        logger.info(
            "movement %s %s %d on product %s: %d -> %d",
            movement.id, movement_type.value, quantity, product.id, previous_stock, new_stock,
        )
        return MovementResult(movement, product, previous_stock, new_stock, alerts)

    def reverse_movement(self, movement_id: int, actor_id: int) -> ReversalResult:
        movement = self.movements.get_owned(movement_id, actor_id)
        if movement is None:
            raise NotFound("Movement")

        product = self.products.lock(movement.product_id)
        # Only the read taken under the product lock decides; an overlapping
        # reversal of the same movement may have committed in between
        movement = self.movements.get_owned(movement_id, actor_id, lock=True)
        if product is None or movement is None:
            raise NotFound("Movement")

        previous_stock = product.current_stock
        if movement.type is MovementType.INBOUND:
            new_stock = previous_stock - movement.quantity
        else:
            new_stock = previous_stock + movement.quantity

        # Later outbound movements can already have consumed this inbound quantity
        if new_stock < 0:
            raise InsufficientStock(previous_stock, movement.quantity)

        self.movements.delete(movement)
        product.current_stock = new_stock
        self.uow.flush()

        alerts = self.alert_manager.evaluate(product.id, new_stock, product.min_stock, actor_id)
        logger.info(
            "reversed movement %s on product %s: %d -> %d",
            movement_id, product.id, previous_stock, new_stock,
        )
        return ReversalResult(movement_id, product, previous_stock, new_stock, alerts)
