# backend/repositories/products.py
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.category import Category
from models.movement import Movement
from models.product import Product
from services.exceptions import ProductInUse, ProductNotFound


class ProductRepository:
    """SQLAlchemy access to the products table. Flushes, never commits."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, product_id: int, for_update: bool = False) -> Product:
        query = self.db.query(Product).filter(Product.id == product_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        product = query.first()
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def update(self, product_id: int, fields: Dict[str, Any]) -> Product:
        product = self.get_by_id(product_id)
        for key, value in fields.items():
            setattr(product, key, value)
        self.db.flush()
        return product

    def create(self, fields: Dict[str, Any]) -> Product:
        product = Product(**fields)
        self.db.add(product)
        self.db.flush()
        return product

    def delete(self, product_id: int) -> None:
        product = self.get_by_id(product_id)
        in_use = self.db.query(Movement.id).filter(Movement.product_id == product_id).first()
        if in_use:
            raise ProductInUse(product_id)
        self.db.delete(product)
        self.db.flush()

    def list(self, search: Optional[str] = None, category_id: Optional[int] = None) -> List[Product]:
        query = self.db.query(Product).outerjoin(Category, Product.category_id == Category.id)
        if search:
            like = f"%{search}%"
            query = query.filter(or_(Product.description.ilike(like), Category.name.ilike(like)))
        if category_id is not None:
            query = query.filter(Product.category_id == category_id)
        return query.order_by(Product.created_at.desc(), Product.id.desc()).all()
