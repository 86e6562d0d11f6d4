# backend/models/movement.py
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Enum, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# Direction of a stock movement
class MovementType(str, enum.Enum):
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"

# One entry of the stock ledger. Rows are never edited; deleting one
# must go through the ledger so the stock change is reversed.
class Movement(Base):
    __tablename__ = "movements"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movements_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    type = Column(Enum(MovementType, name="movementtype"), nullable=False)
    quantity = Column(Integer, nullable=False)

    reason = Column(String, nullable=False)
    notes = Column(Text, nullable=True)

    # Set client-side too so SQLite stores the same text format the date filters bind
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    product = relationship("Product", back_populates="movements")
    user = relationship("User")
