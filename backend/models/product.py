# backend/models/product.py
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# Model Product
# A single stocked item. `stock` is set once on creation and afterwards
# changed only by the movement ledger.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    description = Column(String, nullable=False, index=True)

    # Stock level, kept non-negative by the database as well.
    stock = Column(Integer, CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"), nullable=False, default=0)

    cost = Column(Numeric(10, 2), CheckConstraint("cost >= 0", name="ck_products_cost_non_negative"), nullable=False)
    price = Column(Numeric(10, 2), CheckConstraint("price >= 0", name="ck_products_price_non_negative"), nullable=False)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    category = relationship("Category", back_populates="products")
    movements = relationship("Movement", back_populates="product")
