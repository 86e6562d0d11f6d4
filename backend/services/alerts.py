# backend/services/alerts.py
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError

from models.alert import Alert
from services.errors import AlreadyResolved, NotFound, is_violation
from services.stores import AlertStore
from services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AlertEvaluation:
    created: Optional[Alert] = None
    resolved: List[Alert] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.created is not None or bool(self.resolved)


class AlertManager:
    """Keeps low-stock alerts in line with a product's stock.

    Per product there is either no open alert or exactly one:
    ``current_stock < min_stock`` opens one if none is open,
    ``current_stock >= min_stock`` resolves whatever is open. Evaluation
    never deletes alerts. Callers evaluating after a stock write must hold
    the product row lock; the partial unique index on open alerts backs
    this up.
    """

    def __init__(self, uow: UnitOfWork, alerts: Optional[AlertStore] = None, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self.alerts = alerts or AlertStore(uow.session)
        self.clock = clock

    def evaluate(self, product_id: int, current_stock: int, min_stock: int, actor_id: int) -> AlertEvaluation:
        result = AlertEvaluation()
        open_alerts = self.alerts.open_for_product(product_id)

        if current_stock < min_stock:
            if open_alerts:
                return result
            result.created = self._open(product_id, actor_id)
            return result

        now = self.clock()
        for alert in open_alerts:
            alert.is_resolved = True
            alert.resolved_at = now
            result.resolved.append(alert)
        if open_alerts:
            self.uow.flush()
            logger.info(
                "resolved %d alert(s) for product %s (stock %s >= min %s)",
                len(open_alerts), product_id, current_stock, min_stock,
            )
        return result

    def _open(self, product_id: int, actor_id: int) -> Optional[Alert]:
        alert = Alert(product_id=product_id, user_id=actor_id, is_resolved=False, resolved_at=None)
        try:
            with self.uow.session.begin_nested():
                self.alerts.add(alert)
        except IntegrityError as exc:
            if not is_violation(exc, "uq_alerts_open_product", "alerts.product_id"):
                raise
            # A concurrent evaluation opened one first; the state is already right
            logger.warning("open alert for product %s already exists, skipping", product_id)
            return None
        logger.info("opened low-stock alert %s for product %s", alert.id, product_id)
        return alert

    def resolve(self, alert_id: int, actor_id: int) -> Alert:
        alert = self.alerts.get_owned(alert_id, actor_id)
        if alert is None:
            raise NotFound("Alert")
        if alert.is_resolved:
            raise AlreadyResolved(alert.id)
        alert.is_resolved = True
        alert.resolved_at = self.clock()
        self.uow.flush()
        return alert

    def delete(self, alert_id: int, actor_id: int) -> None:
        alert = self.alerts.get_owned(alert_id, actor_id)
        if alert is None:
            raise NotFound("Alert")
        self.alerts.delete(alert)
