# backend/services/ledger.py
"""
MOVEMENT LEDGER

Purpose:
- Record stock movements (entry / exit / adjustment) and keep Product.stock in
  step with them on create, update and delete.

Rules:
- entry adds quantity, exit subtracts it, adjustment sets stock to quantity.
- An exit may never take stock below zero (checked before any write).
- Editing or deleting a movement first reverses its previous effect.
  Reversing an adjustment leaves stock untouched: the level before the
  adjustment is not recorded.
- A movement never changes product after creation.
- Stock is written only through ProductRepository.update.

Concurrency:
- Each mutation holds the product's lock for the whole read-modify-write and
  commits the transaction (when one is given) before releasing it.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Mapping, Optional

from models.movement import MovementType
from services.exceptions import (
    InsufficientStock,
    InvalidMovement,
    ProductChangeNotAllowed,
)

logger = logging.getLogger(__name__)

# Fields a movement patch may carry. product_id is handled separately.
PATCHABLE_FIELDS = {"type", "quantity", "unit_price", "description", "reference", "reason"}
# Fields where None means "keep the current value"
NON_NULLABLE_FIELDS = {"type", "quantity", "unit_price"}


def parse_type(value: Any) -> MovementType:
    try:
        return MovementType(value)
    except ValueError:
        raise InvalidMovement(f"Unknown movement type: {value!r}")


def validate_quantity(movement_type: MovementType, quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidMovement("quantity must be an integer")
    if movement_type == MovementType.ADJUSTMENT:
        if quantity < 0:
            raise InvalidMovement("adjustment target stock cannot be negative")
    elif quantity <= 0:
        raise InvalidMovement(f"{movement_type.value} quantity must be greater than zero")
    return quantity


def apply_delta(stock: int, movement_type: MovementType, quantity: int) -> int:
    if movement_type == MovementType.ENTRY:
        return stock + quantity
    if movement_type == MovementType.EXIT:
        return stock - quantity
    return quantity


def reverse_delta(stock: int, movement_type: MovementType, quantity: int) -> int:
    if movement_type == MovementType.ENTRY:
        return stock - quantity
    if movement_type == MovementType.EXIT:
        return stock + quantity
    logger.warning(
        "Adjustment reversal leaves stock at %s: pre-adjustment level is unknown", stock
    )
    return stock


class ProductLocks:
    """
    Registry of one mutex per product id.

    Locks are created on first use and kept for the life of the process, so the
    registry holds at most one lock per product ever mutated.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    @contextmanager
    def hold(self, product_id: int) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(product_id, threading.Lock())
        with lock:
            yield


# Shared by every ledger built in this process
product_locks = ProductLocks()


class MovementLedger:
    def __init__(self, products, movements, locks: Optional[ProductLocks] = None, transaction=None):
        self._products = products
        self._movements = movements
        self._locks = locks or product_locks
        # Anything with commit() / rollback(), usually the SQLAlchemy session
        self._transaction = transaction

    @contextmanager
    def _mutating(self, product_id: int) -> Iterator[None]:
        with self._locks.hold(product_id):
            try:
                yield
            except Exception:
                if self._transaction is not None:
                    self._transaction.rollback()
                raise
            if self._transaction is not None:
                self._transaction.commit()

    # ---- writes ----

    def create(self, draft: Mapping[str, Any], *, user: str):
        """Insert a movement and apply its effect to the product's stock."""
        fields = {k: v for k, v in dict(draft).items() if k in PATCHABLE_FIELDS}
        product_id = draft.get("product_id")
        if product_id is None:
            raise InvalidMovement("product_id is required")

        movement_type = parse_type(fields.get("type"))
        quantity = validate_quantity(movement_type, fields.get("quantity"))
        fields.update(type=movement_type.value, quantity=quantity, product_id=product_id, user=user)
        if fields.get("unit_price") is None:
            fields["unit_price"] = 0

        with self._mutating(product_id):
            product = self._products.get_by_id(product_id, for_update=True)
            if movement_type == MovementType.EXIT and product.stock < quantity:
                logger.info(
                    "Rejected exit of %s from product %s holding %s", quantity, product_id, product.stock
                )
                raise InsufficientStock(product.stock, quantity)

            movement = self._movements.insert(fields)

            product = self._products.get_by_id(product_id, for_update=True)
            old_stock = product.stock
            new_stock = apply_delta(old_stock, movement_type, quantity)
            self._products.update(product_id, {"stock": new_stock})
            logger.info(
                "Movement %s (%s %s) moved product %s stock %s -> %s",
                movement.id, movement_type.value, quantity, product_id, old_stock, new_stock,
            )
        return movement

    def update(self, movement_id: int, patch: Mapping[str, Any]):
        """
        Patch a movement. When quantity or type change, the old effect is
        reversed and the new one applied before the row is patched.
        """
        patch = dict(patch)
        current = self._movements.get_by_id(movement_id)

        if "product_id" in patch:
            requested = patch.pop("product_id")
            if requested is not None and requested != current.product_id:
                raise ProductChangeNotAllowed(movement_id)

        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            raise InvalidMovement(f"Fields cannot be changed: {', '.join(sorted(unknown))}")

        fields = {
            k: v for k, v in patch.items()
            if not (k in NON_NULLABLE_FIELDS and v is None)
        }

        with self._mutating(current.product_id):
            # re-read under the lock, bypassing the identity map
            current = self._movements.get_by_id(movement_id, for_update=True)

            if "quantity" in fields or "type" in fields:
                product = self._products.get_by_id(current.product_id, for_update=True)
                current_type = parse_type(current.type)
                old_stock = product.stock
                stock = reverse_delta(old_stock, current_type, current.quantity)

                new_type = parse_type(fields.get("type", current.type))
                new_quantity = validate_quantity(new_type, fields.get("quantity", current.quantity))

                if new_type == MovementType.EXIT and stock < new_quantity:
                    logger.info(
                        "Rejected edit of movement %s: exit of %s with %s available",
                        movement_id, new_quantity, stock,
                    )
                    raise InsufficientStock(stock, new_quantity)

                new_stock = apply_delta(stock, new_type, new_quantity)
                self._products.update(current.product_id, {"stock": new_stock})
                fields.update(type=new_type.value, quantity=new_quantity)
                logger.info(
                    "Movement %s edited: product %s stock %s -> %s",
                    movement_id, current.product_id, old_stock, new_stock,
                )

            movement = self._movements.update(movement_id, fields)
        return movement

    def delete(self, movement_id: int) -> None:
        current = self._movements.get_by_id(movement_id)

        with self._mutating(current.product_id):
            current = self._movements.get_by_id(movement_id, for_update=True)
            product = self._products.get_by_id(current.product_id, for_update=True)
            old_stock = product.stock
            new_stock = reverse_delta(old_stock, parse_type(current.type), current.quantity)
            self._products.update(current.product_id, {"stock": new_stock})
            self._movements.delete(movement_id)
            logger.info(
                "Movement %s deleted: product %s stock %s -> %s",
                movement_id, current.product_id, old_stock, new_stock,
            )

    # ---- reads ----

    def get(self, movement_id: int):
        return self._movements.get_by_id(movement_id)

    def list_all(self, search: Optional[str] = None) -> List[Any]:
        return self._movements.select(search=search)

    def list_by_product(self, product_id: int) -> List[Any]:
        return self._movements.select(product_id=product_id)

    def list_by_type(self, movement_type: Any) -> List[Any]:
        return self._movements.select(movement_type=parse_type(movement_type).value)

    def list_by_date_range(self, start: datetime, end: datetime) -> List[Any]:
        if start > end:
            raise InvalidMovement("start must not be after end")
        return self._movements.select(start=start, end=end)
