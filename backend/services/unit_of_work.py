# backend/services/unit_of_work.py
import logging

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Transaction scope shared by the stores and services of one operation.

    Services only flush. Leaving the ``with`` block commits; any exception
    rolls everything back (movement row, stock update and alert changes
    together) and propagates.

        with UnitOfWork(db) as uow:
            ledger = StockLedger(uow)
            result = ledger.apply_movement(...)
    """

    def __init__(self, session: Session):
        self.session = session

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.commit()
        else:
            logger.debug("rolling back unit of work after %s", exc_type.__name__)
            self.rollback()
        return False

    def flush(self):
        self.session.flush()

    def commit(self):
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def rollback(self):
        self.session.rollback()
