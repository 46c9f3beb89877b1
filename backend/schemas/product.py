# backend/schemas/product.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Shared base attributes for product entities
class ProductBase(ORMBase):
    description: str = Field(min_length=1)
    cost: float = Field(ge=0)
    price: float = Field(ge=0)
    category_id: int


# Schema for creating a new product; stock is the starting level
class ProductCreate(ProductBase):
    stock: int = Field(default=0, ge=0)


# Schema for partial product updates
class ProductEditRequest(ORMBase):
    """PATCH body. Stock is absent on purpose: it only changes through movements."""
    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = Field(None, min_length=1)
    cost: Optional[float] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    category_id: Optional[int] = None


# Compact product view embedded in movement listings
class ProductSummary(ORMBase):
    id: int
    description: str
    stock: int
    price: float


class ProductResponse(ProductBase):
    id: int
    stock: int
    created_at: datetime
