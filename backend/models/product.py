# backend/models/product.py
from sqlalchemy import (
    Column, Integer, String, Text, Numeric, ForeignKey, DateTime,
    CheckConstraint, UniqueConstraint, func,
)
from sqlalchemy.orm import relationship
from database import Base

# Model Product
# A single stock-keeping item owned by one user and grouped in one category.
# current_stock is only ever changed by the stock ledger (movements);
# min_stock is the threshold below which an open alert must exist.
class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        # Authoritative SKU uniqueness; the generator retries on violations of this constraint.
        UniqueConstraint("sku", name="uq_products_sku"),
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        CheckConstraint("min_stock >= 0", name="ck_products_min_stock_non_negative"),
        CheckConstraint("current_stock >= 0", name="ck_products_current_stock_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(32), nullable=False, index=True)
    name = Column(String, nullable=False, index=True)

    description = Column(Text, nullable=True)
    barcode = Column(String, nullable=True)

    price = Column(Numeric(10, 2), nullable=False)

    # Stock data
    min_stock = Column(Integer, nullable=False)
    current_stock = Column(Integer, nullable=False)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("Category", back_populates="products")
    user = relationship("User", back_populates="products")
    movements = relationship(
        "Movement", back_populates="product",
        cascade="all", passive_deletes=True,
        order_by="Movement.created_at.desc()",
    )
    alerts = relationship("Alert", back_populates="product", cascade="all", passive_deletes=True)
