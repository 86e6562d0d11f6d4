# backend/schemas/alert.py
from datetime import datetime
from typing import Optional, Literal

from schemas.common import ORMBase
from schemas.product import AlertProductSnapshot

# Filter accepted by the alert list
AlertStatusFilter = Literal["active", "resolved", "all"]


class AlertOut(ORMBase):
    id: int
    product: AlertProductSnapshot
    is_resolved: bool
    created_at: datetime
    resolved_at: Optional[datetime] = None


class AlertResolved(ORMBase):
    id: int
    product_id: int
    is_resolved: bool
    resolved_at: Optional[datetime] = None


class AlertResolveResponse(ORMBase):
    message: str
    alert: AlertResolved


class AlertStats(ORMBase):
    total: int
    active: int
    resolved: int
