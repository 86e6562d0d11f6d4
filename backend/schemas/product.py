# backend/schemas/product.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Literal

from pydantic import Field

from schemas.common import ORMBase
from schemas.category import CategoryOut
from models.movement import MovementType

# Stock status buckets used by the product list filter
StockStatus = Literal["critical", "low", "sufficient"]


# Shared base attributes for product entities
class ProductBase(ORMBase):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    barcode: Optional[str] = None
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    min_stock: int = Field(ge=0)


# Schema for creating a new product; the SKU is always generated
class ProductCreate(ProductBase):
    current_stock: int = Field(ge=0)
    category_id: int


# Schema for product edits - stock is never edited directly, only through movements
class ProductUpdate(ORMBase):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    barcode: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    min_stock: Optional[int] = Field(None, ge=0)
    category_id: Optional[int] = None


# Full product representation
class ProductOut(ProductBase):
    id: int
    sku: str
    current_stock: int
    category_id: int
    user_id: int
    category: Optional[CategoryOut] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Movement line shown on the product detail page
class ProductMovementOut(ORMBase):
    id: int
    type: MovementType
    quantity: int
    reason: str
    notes: Optional[str] = None
    user_id: int
    created_at: datetime


class ProductDetail(ProductOut):
    movements: List[ProductMovementOut] = []


# Product snapshot embedded in alert responses
class AlertProductSnapshot(ORMBase):
    id: int
    name: str
    sku: str
    current_stock: int
    min_stock: int
    category: Optional[CategoryOut] = None
