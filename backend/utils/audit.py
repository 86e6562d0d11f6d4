# backend/utils/audit.py
import logging
from typing import Optional

from sqlalchemy.orm import Session
from models.log import Log

logger = logging.getLogger(__name__)


def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", ip: Optional[str] = None, meta=None):
    """Persist one audit entry in its own commit.

    Call only after the business unit of work has finished (committed or
    rolled back), otherwise this commit would close it early.
    """
    entry = Log(user_id=user_id, action=action, resource=resource, status=status, ip=ip, meta=meta or {})
    db.add(entry)
    db.commit()
    logger.info("audit %s %s %s user=%s meta=%s", resource, action, status, user_id, meta or {})
