# backend/repositories/categories.py
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.category import Category
from models.product import Product
from services.exceptions import CategoryInUse, CategoryNotFound


class CategoryRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, category_id: int) -> Category:
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if category is None:
            raise CategoryNotFound(category_id)
        return category

    def create(self, fields: Dict[str, Any]) -> Category:
        category = Category(**fields)
        self.db.add(category)
        self.db.flush()
        return category

    def update(self, category_id: int, fields: Dict[str, Any]) -> Category:
        category = self.get_by_id(category_id)
        for key, value in fields.items():
            setattr(category, key, value)
        self.db.flush()
        return category

    def delete(self, category_id: int) -> None:
        category = self.get_by_id(category_id)
        if self.db.query(Product.id).filter(Product.category_id == category_id).first():
            raise CategoryInUse(category_id)
        self.db.delete(category)
        self.db.flush()

    def list(self, search: Optional[str] = None, active_only: bool = False) -> List[Category]:
        query = self.db.query(Category)
        if search:
            like = f"%{search}%"
            query = query.filter(or_(Category.name.ilike(like), Category.description.ilike(like)))
        if active_only:
            query = query.filter(Category.is_active.is_(True))
        return query.order_by(Category.created_at.desc(), Category.id.desc()).all()
