# backend/schemas/category.py
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from schemas.common import ORMBase


# Schema for creating or renaming a category
class CategoryIn(ORMBase):
    name: str = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value


class CategoryOut(ORMBase):
    id: int
    name: str
    user_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# List item with the number of products in the category
class CategoryWithCount(CategoryOut):
    product_count: int = 0
