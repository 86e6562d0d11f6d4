# backend/services/stores.py
"""Owner-scoped data access for the inventory tables.

Each store wraps the session of the current unit of work. Lookups that take
a ``user_id`` return ``None`` for rows owned by someone else, exactly as for
missing rows.
"""
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from models.alert import Alert
from models.category import Category
from models.movement import Movement, MovementType
from models.product import Product


def _utc(value: datetime) -> datetime:
    # Naive bounds are taken as UTC already
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc)


class ProductStore:
    def __init__(self, session: Session):
        self.session = session

    def get_owned(self, product_id: int, user_id: int, lock: bool = False) -> Optional[Product]:
        query = self.session.query(Product).filter(Product.id == product_id, Product.user_id == user_id)
        if lock:
            # Serialises every stock read-modify-write on this product row
            query = query.with_for_update().populate_existing()
        return query.first()

    def lock(self, product_id: int) -> Optional[Product]:
        return (
            self.session.query(Product)
            .filter(Product.id == product_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def sku_exists(self, sku: str) -> bool:
        return self.session.query(Product.id).filter(Product.sku == sku).first() is not None

    def add(self, product: Product) -> Product:
        self.session.add(product)
        self.session.flush()
        return product

    def delete(self, product: Product):
        self.session.delete(product)
        self.session.flush()

    def list_owned(self, user_id: int, category_id: Optional[int] = None, search: Optional[str] = None) -> List[Product]:
        query = (
            self.session.query(Product)
            .options(joinedload(Product.category))
            .filter(Product.user_id == user_id)
        )
        if category_id is not None:
            query = query.filter(Product.category_id == category_id)
        if search:
            like = f"%{search}%"
            query = query.filter(or_(Product.name.ilike(like), Product.sku.ilike(like)))
        return query.order_by(Product.created_at.desc(), Product.id.desc()).all()


class MovementStore:
    def __init__(self, session: Session):
        self.session = session

    def get_owned(self, movement_id: int, user_id: int, lock: bool = False) -> Optional[Movement]:
        query = (
            self.session.query(Movement)
            .join(Product, Movement.product_id == Product.id)
            .filter(Movement.id == movement_id, Product.user_id == user_id)
        )
        if lock:
            # Re-reads the row; None once a concurrent reversal has deleted it
            query = query.with_for_update().populate_existing()
        return query.first()

    def add(self, movement: Movement) -> Movement:
        self.session.add(movement)
        self.session.flush()
        return movement

    def delete(self, movement: Movement):
        self.session.delete(movement)
        self.session.flush()

    def list_owned(
        self,
        user_id: int,
        product_id: Optional[int] = None,
        type: Optional[MovementType] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Movement]:
        query = (
            self.session.query(Movement)
            .join(Product, Movement.product_id == Product.id)
            .options(joinedload(Movement.product), joinedload(Movement.user))
            .filter(Product.user_id == user_id)
        )
        if product_id is not None:
            query = query.filter(Movement.product_id == product_id)
        if type is not None:
            query = query.filter(Movement.type == type)
        if start is not None:
            query = query.filter(Movement.created_at >= _utc(start))
        if end is not None:
            query = query.filter(Movement.created_at <= _utc(end))
        return query.order_by(Movement.created_at.desc(), Movement.id.desc()).all()


class AlertStore:
    def __init__(self, session: Session):
        self.session = session

    def open_for_product(self, product_id: int) -> List[Alert]:
        return (
            self.session.query(Alert)
            .filter(Alert.product_id == product_id, Alert.is_resolved.is_(False))
            .order_by(Alert.id)
            .all()
        )

    def get_owned(self, alert_id: int, user_id: int) -> Optional[Alert]:
        return self.session.query(Alert).filter(Alert.id == alert_id, Alert.user_id == user_id).first()

    def add(self, alert: Alert) -> Alert:
        self.session.add(alert)
        self.session.flush()
        return alert

    def delete(self, alert: Alert):
        self.session.delete(alert)
        self.session.flush()

    def list_owned(self, user_id: int, resolved: Optional[bool] = None) -> List[Alert]:
        query = (
            self.session.query(Alert)
            .options(joinedload(Alert.product).joinedload(Product.category))
            .filter(Alert.user_id == user_id)
        )
        if resolved is not None:
            query = query.filter(Alert.is_resolved.is_(resolved))
        return query.order_by(Alert.created_at.desc(), Alert.id.desc()).all()

    def count_owned(self, user_id: int, resolved: Optional[bool] = None) -> int:
        query = self.session.query(func.count(Alert.id)).filter(Alert.user_id == user_id)
        if resolved is not None:
            query = query.filter(Alert.is_resolved.is_(resolved))
        return query.scalar() or 0


class CategoryStore:
    def __init__(self, session: Session):
        self.session = session

    def get_owned(self, category_id: int, user_id: int) -> Optional[Category]:
        return self.session.query(Category).filter(Category.id == category_id, Category.user_id == user_id).first()

    def list_owned(self, user_id: int):
        """Owner's categories with their product counts, ordered by name."""
        return (
            self.session.query(Category, func.count(Product.id))
            .outerjoin(Product, Product.category_id == Category.id)
            .filter(Category.user_id == user_id)
            .group_by(Category.id)
            .order_by(Category.name.asc())
            .all()
        )

    def product_count(self, category_id: int) -> int:
        return self.session.query(func.count(Product.id)).filter(Product.category_id == category_id).scalar() or 0

    def add(self, category: Category) -> Category:
        self.session.add(category)
        self.session.flush()
        return category

    def delete(self, category: Category):
        self.session.delete(category)
        self.session.flush()
