# backend/models/alert.py
from sqlalchemy import Column, Integer, Boolean, ForeignKey, DateTime, Index, func, text
from sqlalchemy.orm import relationship
from database import Base

# Low-stock alert. An unresolved row means the product is currently below
# its min_stock; resolution keeps the row for history.
class Alert(Base):
    __tablename__ = "alerts"
    __table_args__ = (
        # At most one open alert per product
        Index(
            "uq_alerts_open_product",
            "product_id",
            unique=True,
            sqlite_where=text("is_resolved = 0"),
            postgresql_where=text("is_resolved = false"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    is_resolved = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    product = relationship("Product", back_populates="alerts")
    user = relationship("User")
