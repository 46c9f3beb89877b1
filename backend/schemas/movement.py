# backend/schemas/movement.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional

from models.movement import MovementType
from schemas.product import ProductSummary


# Base schema for stock movement data
class MovementBase(BaseModel):
    type: MovementType
    # Units moved; for adjustments the new absolute stock level
    quantity: int = Field(ge=0)
    unit_price: float = Field(default=0, ge=0)
    description: Optional[str] = None
    reference: Optional[str] = None
    reason: Optional[str] = None


# Schema for creating a new stock movement
class MovementCreate(MovementBase):
    product_id: int


# Partial edit. A movement stays bound to its product, so product_id is rejected.
class MovementUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Optional[MovementType] = None
    quantity: Optional[int] = Field(None, ge=0)
    unit_price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    reference: Optional[str] = None
    reason: Optional[str] = None


# Schema for returning stock movement details
class MovementResponse(MovementBase):
    id: int
    product_id: int
    total: float
    user: str
    created_at: datetime
    product: Optional[ProductSummary] = None

    model_config = ConfigDict(from_attributes=True)
