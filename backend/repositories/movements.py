# backend/repositories/movements.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, contains_eager

from models.movement import Movement
from models.product import Product
from services.exceptions import MovementNotFound


def _total(quantity: int, unit_price: Any) -> Decimal:
    return Decimal(str(unit_price or 0)) * quantity


class MovementRepository:
    """SQLAlchemy access to the movements table. Keeps `total` derived."""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return (
            self.db.query(Movement)
            .join(Product, Movement.product_id == Product.id)
            .options(contains_eager(Movement.product))
        )

    def get_by_id(self, movement_id: int, for_update: bool = False) -> Movement:
        query = self._query().filter(Movement.id == movement_id)
        if for_update:
            query = query.with_for_update(of=Movement).populate_existing()
        movement = query.first()
        if movement is None:
            raise MovementNotFound(movement_id)
        return movement

    def insert(self, fields: Dict[str, Any]) -> Movement:
        movement = Movement(**fields)
        movement.total = _total(movement.quantity, movement.unit_price)
        self.db.add(movement)
        self.db.flush()
        return movement

    def update(self, movement_id: int, fields: Dict[str, Any]) -> Movement:
        movement = self.get_by_id(movement_id)
        for key, value in fields.items():
            setattr(movement, key, value)
        if "quantity" in fields or "unit_price" in fields:
            movement.total = _total(movement.quantity, movement.unit_price)
        self.db.flush()
        return movement

    def delete(self, movement_id: int) -> None:
        movement = self.get_by_id(movement_id)
        self.db.delete(movement)
        self.db.flush()

    def select(
        self,
        product_id: Optional[int] = None,
        movement_type: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        search: Optional[str] = None,
    ) -> List[Movement]:
        query = self._query()
        if product_id is not None:
            query = query.filter(Movement.product_id == product_id)
        if movement_type:
            query = query.filter(Movement.type == movement_type)
        if start is not None:
            query = query.filter(Movement.created_at >= start)
        if end is not None:
            query = query.filter(Movement.created_at <= end)
        if search:
            like = f"%{search}%"
            query = query.filter(or_(Product.description.ilike(like), Movement.user.ilike(like)))
        return query.order_by(Movement.created_at.desc(), Movement.id.desc()).all()
