import pytest

from models.alert import Alert
from models.movement import Movement, MovementType
from models.product import Product
from services.errors import InsufficientStock, NotFound, ValidationFailure
from services.stock_ledger import StockLedger
from services.stores import MovementStore
from services.unit_of_work import UnitOfWork


def apply(db, product, type, quantity, actor, reason="test"):
    with UnitOfWork(db) as uow:
        return StockLedger(uow).apply_movement(product.id, type, quantity, reason, None, actor.id)


def reverse(db, movement_id, actor):
    with UnitOfWork(db) as uow:
        return StockLedger(uow).reverse_movement(movement_id, actor.id)


def stock_of(db, product_id):
    return db.query(Product).filter(Product.id == product_id).one().current_stock


def open_alerts(db, product_id):
    return db.query(Alert).filter(Alert.product_id == product_id, Alert.is_resolved.is_(False)).all()


def test_inbound_adds_quantity_and_records_movement(db, owner, make_product):
    product = make_product(current_stock=10, min_stock=5)

    result = apply(db, product, MovementType.INBOUND, 4, owner)

    assert (result.previous_stock, result.current_stock) == (10, 14)
    assert stock_of(db, product.id) == 14
    movement = db.query(Movement).one()
    assert movement.type is MovementType.INBOUND
    assert movement.quantity == 4
    assert movement.user_id == owner.id
    assert movement.created_at is not None


def test_outbound_subtracts_quantity(db, owner, make_product):
    product = make_product(current_stock=10, min_stock=5)

    result = apply(db, product, "OUTBOUND", 3, owner)

    assert result.current_stock == 7
    assert stock_of(db, product.id) == 7


def test_outbound_of_entire_stock_is_rejected(db, owner, make_product):
    product = make_product(current_stock=10, min_stock=5)

    with pytest.raises(InsufficientStock) as excinfo:
        apply(db, product, MovementType.OUTBOUND, 10, owner)

    assert excinfo.value.current_stock == 10
    assert excinfo.value.requested == 10
    assert stock_of(db, product.id) == 10
    assert db.query(Movement).count() == 0


def test_outbound_above_stock_is_rejected(db, owner, make_product):
    product = make_product(current_stock=2, min_stock=0)

    with pytest.raises(InsufficientStock):
        apply(db, product, MovementType.OUTBOUND, 5, owner)

    assert stock_of(db, product.id) == 2


@pytest.mark.parametrize("quantity", [0, -3, True, 2.5])
def test_non_positive_or_non_integer_quantity_is_rejected(db, owner, make_product, quantity):
    product = make_product()

    with pytest.raises(ValidationFailure):
        apply(db, product, MovementType.INBOUND, quantity, owner)

    assert db.query(Movement).count() == 0


def test_unknown_type_and_blank_reason_are_rejected(db, owner, make_product):
    product = make_product()

    with pytest.raises(ValidationFailure):
        apply(db, product, "SIDEWAYS", 1, owner)
    with pytest.raises(ValidationFailure):
        apply(db, product, MovementType.INBOUND, 1, owner, reason="   ")


def test_product_of_another_owner_is_not_found(db, owner, other_owner, make_product):
    product = make_product()

    with pytest.raises(NotFound):
        apply(db, product, MovementType.INBOUND, 1, other_owner)

    assert stock_of(db, product.id) == 10


def test_inbound_then_outbound_of_same_quantity_restores_stock(db, owner, make_product):
    product = make_product(current_stock=8, min_stock=2)

    apply(db, product, MovementType.INBOUND, 5, owner)
    apply(db, product, MovementType.OUTBOUND, 5, owner)

    assert stock_of(db, product.id) == 8


def test_outbound_below_threshold_opens_a_single_alert(db, owner, make_product):
    product = make_product(current_stock=10, min_stock=5)

    first = apply(db, product, MovementType.OUTBOUND, 6, owner)
    second = apply(db, product, MovementType.OUTBOUND, 1, owner)

    assert first.alerts.created is not None
    assert second.alerts.created is None
    assert len(open_alerts(db, product.id)) == 1


def test_inbound_back_over_threshold_resolves_the_alert(db, owner, make_product):
    product = make_product(current_stock=10, min_stock=5)
    apply(db, product, MovementType.OUTBOUND, 7, owner)

    result = apply(db, product, MovementType.INBOUND, 2, owner)

    assert stock_of(db, product.id) == 5
    assert len(result.alerts.resolved) == 1
    assert open_alerts(db, product.id) == []
    alert = db.query(Alert).one()
    assert alert.is_resolved is True
    assert alert.resolved_at is not None


def test_reversing_inbound_restores_stock_and_reopens_alert(db, owner, make_product):
    product = make_product(current_stock=3, min_stock=5)
    movement_id = apply(db, product, MovementType.INBOUND, 10, owner).movement.id
    assert open_alerts(db, product.id) == []

    result = reverse(db, movement_id, owner)

    assert result.current_stock == 3
    assert stock_of(db, product.id) == 3
    assert db.query(Movement).count() == 0
    assert len(open_alerts(db, product.id)) == 1


def test_reversing_outbound_adds_quantity_back_and_resolves_alert(db, owner, make_product):
    product = make_product(current_stock=10, min_stock=5)
    movement_id = apply(db, product, MovementType.OUTBOUND, 8, owner).movement.id
    assert len(open_alerts(db, product.id)) == 1

    result = reverse(db, movement_id, owner)

    assert (result.previous_stock, result.current_stock) == (2, 10)
    assert open_alerts(db, product.id) == []


def test_reversal_that_would_go_negative_changes_nothing(db, owner, make_product):
    product = make_product(current_stock=5, min_stock=0)
    inbound_id = apply(db, product, MovementType.INBOUND, 10, owner).movement.id
    apply(db, product, MovementType.OUTBOUND, 12, owner)

    with pytest.raises(InsufficientStock):
        reverse(db, inbound_id, owner)

    assert stock_of(db, product.id) == 3
    assert db.query(Movement).count() == 2


def test_reversing_another_owners_movement_is_not_found(db, owner, other_owner, make_product):
    product = make_product()
    movement_id = apply(db, product, MovementType.INBOUND, 1, owner).movement.id

    with pytest.raises(NotFound):
        reverse(db, movement_id, other_owner)

    assert db.query(Movement).count() == 1


class StaleMovementStore(MovementStore):
    """Hands out the movement as it was read before another reversal committed."""

    def __init__(self, session, stale):
        super().__init__(session)
        self.stale = stale

    def get_owned(self, movement_id, user_id, lock=False):
        if not lock:
            return self.stale
        return super().get_owned(movement_id, user_id, lock=True)


@pytest.mark.parametrize("type", [MovementType.INBOUND, MovementType.OUTBOUND])
def test_overlapping_reversals_of_one_movement_apply_it_once(db, owner, make_product, type):
    product = make_product(current_stock=20, min_stock=5)
    movement = apply(db, product, type, 5, owner).movement
    stale = Movement(
        id=movement.id, product_id=product.id, user_id=owner.id,
        type=movement.type, quantity=movement.quantity, reason=movement.reason,
    )

    reverse(db, stale.id, owner)
    assert stock_of(db, product.id) == 20

    with pytest.raises(NotFound):
        with UnitOfWork(db) as uow:
            ledger = StockLedger(uow, movements=StaleMovementStore(uow.session, stale))
            ledger.reverse_movement(stale.id, owner.id)

    assert stock_of(db, product.id) == 20
    assert db.query(Movement).count() == 0


class ExplodingAlertManager:
    def evaluate(self, *args, **kwargs):
        raise RuntimeError("store unavailable")


def test_failure_after_writes_rolls_back_movement_and_stock(db, owner, make_product):
    product = make_product(current_stock=10, min_stock=5)
    product_id = product.id

    with pytest.raises(RuntimeError):
        with UnitOfWork(db) as uow:
            ledger = StockLedger(uow, alert_manager=ExplodingAlertManager())
            ledger.apply_movement(product_id, MovementType.OUTBOUND, 8, "sale", None, owner.id)

    assert stock_of(db, product_id) == 10
    assert db.query(Movement).count() == 0
    assert open_alerts(db, product_id) == []


def test_stock_and_alert_state_agree_after_mixed_movements(db, owner, make_product):
    product = make_product(current_stock=6, min_stock=5)
    ids = []
    for type, qty in [("OUTBOUND", 2), ("INBOUND", 1), ("OUTBOUND", 3), ("INBOUND", 9), ("OUTBOUND", 6)]:
        ids.append(apply(db, product, type, qty, owner).movement.id)
        stock = stock_of(db, product.id)
        assert stock >= 0
        assert (stock < 5) == (len(open_alerts(db, product.id)) == 1)

    for movement_id in reversed(ids):
        reverse(db, movement_id, owner)
        stock = stock_of(db, product.id)
        assert (stock < 5) == (len(open_alerts(db, product.id)) == 1)

    assert stock_of(db, product.id) == 6
