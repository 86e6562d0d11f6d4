from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from models.alert import Alert
from models.product import Product
from services.alerts import AlertManager
from services.catalog import ProductCatalog
from services.errors import AlreadyResolved, NotFound
from services.stores import AlertStore
from services.unit_of_work import UnitOfWork


def open_alerts(db, product_id):
    return db.query(Alert).filter(Alert.product_id == product_id, Alert.is_resolved.is_(False)).all()


def test_product_created_below_threshold_gets_an_alert(db, owner, make_product):
    product = make_product(current_stock=3, min_stock=5)

    alerts = open_alerts(db, product.id)
    assert len(alerts) == 1
    assert alerts[0].user_id == owner.id
    assert alerts[0].resolved_at is None


def test_product_created_above_threshold_has_no_alert(db, make_product):
    product = make_product(current_stock=10, min_stock=5)

    assert db.query(Alert).filter(Alert.product_id == product.id).count() == 0


def test_product_created_exactly_at_threshold_has_no_alert(db, make_product):
    product = make_product(current_stock=5, min_stock=5)

    assert open_alerts(db, product.id) == []


def test_evaluate_is_a_noop_when_state_already_matches(db, owner, make_product):
    low = make_product(current_stock=1, min_stock=5, name="Low")
    fine = make_product(current_stock=9, min_stock=5, name="Fine")

    with UnitOfWork(db) as uow:
        manager = AlertManager(uow)
        first = manager.evaluate(low.id, 1, 5, owner.id)
        second = manager.evaluate(fine.id, 9, 5, owner.id)

    assert not first.changed
    assert not second.changed
    assert len(open_alerts(db, low.id)) == 1
    assert open_alerts(db, fine.id) == []


class StaleAlertStore(AlertStore):
    """Simulates a concurrent evaluation that has not seen the open alert yet."""

    def open_for_product(self, product_id):
        return []


def test_concurrent_open_is_absorbed_by_unique_index(db, owner, make_product):
    product = make_product(current_stock=2, min_stock=5)

    with UnitOfWork(db) as uow:
        result = AlertManager(uow, alerts=StaleAlertStore(uow.session)).evaluate(product.id, 2, 5, owner.id)

    assert result.created is None
    assert len(open_alerts(db, product.id)) == 1


def test_second_open_alert_violates_unique_index(db, owner, make_product):
    product = make_product(current_stock=2, min_stock=5)

    db.add(Alert(product_id=product.id, user_id=owner.id, is_resolved=False))
    with pytest.raises(IntegrityError):
        db.flush()
    db.rollback()


def test_other_integrity_errors_are_not_taken_for_an_open_alert(db, owner):
    with pytest.raises(IntegrityError):
        with UnitOfWork(db) as uow:
            AlertManager(uow).evaluate(9999, 0, 5, owner.id)

    assert db.query(Alert).count() == 0


class DuplicatedOpenAlerts(AlertStore):
    def __init__(self, session, alerts):
        super().__init__(session)
        self._alerts = alerts

    def open_for_product(self, product_id):
        return self._alerts


def test_recovery_resolves_every_open_alert(db, owner):
    fixed = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    duplicates = [Alert(id=1, product_id=1, user_id=owner.id, is_resolved=False),
                  Alert(id=2, product_id=1, user_id=owner.id, is_resolved=False)]

    uow = UnitOfWork(db)
    manager = AlertManager(uow, alerts=DuplicatedOpenAlerts(db, duplicates), clock=lambda: fixed)
    result = manager.evaluate(1, 10, 5, owner.id)

    assert result.resolved == duplicates
    assert all(a.is_resolved and a.resolved_at == fixed for a in duplicates)


def test_manual_resolve_then_second_resolve_fails(db, owner, make_product):
    product = make_product(current_stock=1, min_stock=5)
    alert_id = open_alerts(db, product.id)[0].id

    with UnitOfWork(db) as uow:
        AlertManager(uow).resolve(alert_id, owner.id)

    alert = db.get(Alert, alert_id)
    assert alert.is_resolved is True
    assert alert.resolved_at is not None

    with pytest.raises(AlreadyResolved) as excinfo:
        with UnitOfWork(db) as uow:
            AlertManager(uow).resolve(alert_id, owner.id)
    assert excinfo.value.alert_id == alert_id


def test_alerts_of_another_owner_are_invisible(db, owner, other_owner, make_product):
    product = make_product(current_stock=1, min_stock=5)
    alert_id = open_alerts(db, product.id)[0].id

    with pytest.raises(NotFound):
        with UnitOfWork(db) as uow:
            AlertManager(uow).resolve(alert_id, other_owner.id)
    with pytest.raises(NotFound):
        with UnitOfWork(db) as uow:
            AlertManager(uow).delete(alert_id, other_owner.id)

    assert len(open_alerts(db, product.id)) == 1


def test_delete_removes_the_alert(db, owner, make_product):
    product = make_product(current_stock=1, min_stock=5)
    alert_id = open_alerts(db, product.id)[0].id

    with UnitOfWork(db) as uow:
        AlertManager(uow).delete(alert_id, owner.id)

    assert db.get(Alert, alert_id) is None


def test_raising_min_stock_opens_and_lowering_it_resolves(db, owner, make_product):
    product = make_product(current_stock=8, min_stock=5)

    with UnitOfWork(db) as uow:
        change = ProductCatalog(uow).update_product(product.id, owner.id, min_stock=10)
    assert change.alerts.created is not None
    assert len(open_alerts(db, product.id)) == 1

    with UnitOfWork(db) as uow:
        change = ProductCatalog(uow).update_product(product.id, owner.id, min_stock=3)
    assert len(change.alerts.resolved) == 1
    assert open_alerts(db, product.id) == []


def test_deleting_product_cascades_to_alerts(db, owner, make_product):
    product = make_product(current_stock=1, min_stock=5)
    product_id = product.id

    with UnitOfWork(db) as uow:
        ProductCatalog(uow).delete_product(product_id, owner.id)

    db.expire_all()
    assert db.get(Product, product_id) is None
    assert db.query(Alert).filter(Alert.product_id == product_id).count() == 0
