# backend/services/exceptions.py
"""
Domain errors raised by repositories and the movement ledger.

Each error carries the HTTP status the API answers with; main.py turns
them into JSON responses with a single exception handler.
"""


class InventoryError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def payload(self) -> dict:
        return {"detail": self.detail}


class NotFound(InventoryError):
    status_code = 404


class ProductNotFound(NotFound):
    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class MovementNotFound(NotFound):
    def __init__(self, movement_id: int):
        super().__init__(f"Movement {movement_id} not found")
        self.movement_id = movement_id


class CategoryNotFound(NotFound):
    def __init__(self, category_id: int):
        super().__init__(f"Category {category_id} not found")
        self.category_id = category_id


class UserNotFound(NotFound):
    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class InsufficientStock(InventoryError):
    """An exit asks for more units than the product holds."""

    status_code = 409

    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Insufficient stock. Current stock: {available}, requested quantity: {requested}"
        )
        self.available = available
        self.requested = requested

    def payload(self) -> dict:
        return {"detail": self.detail, "available": self.available, "requested": self.requested}


class InvalidMovement(InventoryError):
    status_code = 400


class ProductChangeNotAllowed(InvalidMovement):
    def __init__(self, movement_id: int):
        super().__init__(f"Movement {movement_id} cannot be moved to another product")
        self.movement_id = movement_id


class Conflict(InventoryError):
    status_code = 409


class ProductInUse(Conflict):
    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} has recorded movements")
        self.product_id = product_id


class CategoryInUse(Conflict):
    def __init__(self, category_id: int):
        super().__init__(f"Category {category_id} still has products")
        self.category_id = category_id


class DuplicateUsername(Conflict):
    def __init__(self, username: str):
        super().__init__(f"Username '{username}' is already taken")
        self.username = username
