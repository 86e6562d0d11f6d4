# backend/schemas/movement.py
from pydantic import Field, field_validator
from datetime import datetime
from typing import Optional

from models.movement import MovementType
from schemas.common import ORMBase
from schemas.user import UserSnapshot


# Schema for recording a new stock movement
class MovementCreate(ORMBase):
    product_id: int
    type: MovementType
    quantity: int = Field(gt=0, strict=True)
    reason: str = Field(min_length=1)
    notes: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def _reason_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Reason is required")
        return value.strip()


# Schema for returning a persisted movement
class MovementOut(ORMBase):
    id: int
    product_id: int
    type: MovementType
    quantity: int
    reason: str
    notes: Optional[str] = None
    created_at: datetime


class MovementProductSnapshot(ORMBase):
    id: int
    name: str
    sku: str
    current_stock: int


# Movement with embedded product and actor snapshots for list/detail views
class MovementDetail(MovementOut):
    product: MovementProductSnapshot
    user: UserSnapshot


# Stock state of the product right after a movement
class MovementStockState(ORMBase):
    product_id: int
    name: str
    previous_stock: int
    current_stock: int
    min_stock: int


class MovementCreateResponse(ORMBase):
    movement: MovementOut
    product: MovementStockState


class MovementDeleteResponse(ORMBase):
    message: str
    new_stock: int
