# backend/models/movement.py
import enum

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship
from database import Base


class MovementType(str, enum.Enum):
    ENTRY = "entry"
    EXIT = "exit"
    # quantity is the absolute stock level after the adjustment
    ADJUSTMENT = "adjustment"


class Movement(Base):
    __tablename__ = "movements"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    # Movement classification, one of MovementType values
    type = Column(String(20), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)

    unit_price = Column(Numeric(10, 2), nullable=False, default=0)
    # quantity * unit_price, maintained by the movement repository
    total = Column(Numeric(12, 2), nullable=False, default=0)

    description = Column(String, nullable=True)
    # Username of whoever recorded the movement
    user = Column(String, nullable=False)
    reference = Column(String, nullable=True)
    reason = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    product = relationship("Product", back_populates="movements")
