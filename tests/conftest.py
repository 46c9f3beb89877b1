"""
Pytest fixtures for the inventory admin test suite.

Provides:
- In-memory fake repositories for ledger unit tests (no database)
- An in-memory SQLite database shared by the API and the test (StaticPool)
- A TestClient with get_db overridden and ready-made auth headers
"""

import os

# Must be set before config.settings is created
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"

import copy
import itertools
import time
from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app
from models.users import User
from services.exceptions import MovementNotFound, ProductNotFound
from services.ledger import MovementLedger, ProductLocks
from utils.hashing import get_password_hash
from utils.tokenJWT import create_access_token


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeProductRepository:
    """Products kept in a dict; records every stock write."""

    def __init__(self, read_delay: float = 0.0):
        self.rows = {}
        self.stock_writes = []
        self.read_delay = read_delay
        self._ids = itertools.count(1)

    def add(self, stock: int, description: str = "Test product", price: float = 10.0):
        product = SimpleNamespace(id=next(self._ids), description=description, stock=stock, price=price)
        self.rows[product.id] = product
        return product

    def get_by_id(self, product_id, for_update=False):
        if self.read_delay:
            time.sleep(self.read_delay)
        if product_id not in self.rows:
            raise ProductNotFound(product_id)
        return copy.copy(self.rows[product_id])

    def update(self, product_id, fields):
        product = self.rows[product_id]
        for key, value in fields.items():
            setattr(product, key, value)
        if "stock" in fields:
            self.stock_writes.append((product_id, fields["stock"]))
        return copy.copy(product)


class FakeMovementRepository:
    """Movements kept in a dict with a deterministic clock for created_at."""

    def __init__(self, products: FakeProductRepository):
        self.products = products
        self.rows = {}
        self.fail_insert = False
        self.fail_update = False
        self._ids = itertools.count(1)
        self._clock = datetime(2026, 1, 1, 8, 0, 0)

    def _with_product(self, movement):
        out = copy.copy(movement)
        out.product = self.products.rows.get(movement.product_id)
        return out

    def get_by_id(self, movement_id, for_update=False):
        if movement_id not in self.rows:
            raise MovementNotFound(movement_id)
        return self._with_product(self.rows[movement_id])

    def insert(self, fields):
        if self.fail_insert:
            raise RuntimeError("store unavailable")
        self._clock += timedelta(minutes=1)
        row = {"description": None, "reference": None, "reason": None}
        row.update(fields)
        movement = SimpleNamespace(id=next(self._ids), created_at=self._clock, **row)
        movement.total = Decimal(str(movement.unit_price)) * movement.quantity
        self.rows[movement.id] = movement
        return self._with_product(movement)

    def update(self, movement_id, fields):
        if self.fail_update:
            raise RuntimeError("store unavailable")
        movement = self.rows[movement_id]
        for key, value in fields.items():
            setattr(movement, key, value)
        movement.total = Decimal(str(movement.unit_price)) * movement.quantity
        return self._with_product(movement)

    def delete(self, movement_id):
        del self.rows[movement_id]

    def select(self, product_id=None, movement_type=None, start=None, end=None, search=None):
        rows = list(self.rows.values())
        if product_id is not None:
            rows = [m for m in rows if m.product_id == product_id]
        if movement_type:
            rows = [m for m in rows if m.type == movement_type]
        if start is not None:
            rows = [m for m in rows if m.created_at >= start]
        if end is not None:
            rows = [m for m in rows if m.created_at <= end]
        if search:
            needle = search.lower()
            rows = [
                m for m in rows
                if needle in m.user.lower() or needle in self.products.rows[m.product_id].description.lower()
            ]
        rows.sort(key=lambda m: (m.created_at, m.id), reverse=True)
        return [self._with_product(m) for m in rows]


class FakeTransaction:
    def __init__(self):
        self.commits = 0
        self.rollbacks = 0

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


@pytest.fixture
def products():
    return FakeProductRepository()


@pytest.fixture
def movements(products):
    return FakeMovementRepository(products)


@pytest.fixture
def transaction():
    return FakeTransaction()


@pytest.fixture
def ledger(products, movements, transaction):
    return MovementLedger(products, movements, locks=ProductLocks(), transaction=transaction)


# ---------------------------------------------------------------------------
# Database / API
# ---------------------------------------------------------------------------

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(session_factory, username, role):
    with session_factory() as db:
        user = User(username=username, password_hash=get_password_hash("secret123"), role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return SimpleNamespace(id=user.id, username=user.username, role=user.role)


@pytest.fixture
def admin_user(session_factory):
    return _make_user(session_factory, "admin", "admin")


@pytest.fixture
def staff_user(session_factory):
    return _make_user(session_factory, "clerk", "staff")


@pytest.fixture
def admin_headers(admin_user):
    token = create_access_token({"sub": admin_user.username, "role": admin_user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def staff_headers(staff_user):
    token = create_access_token({"sub": staff_user.username, "role": staff_user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def category(client, staff_headers):
    resp = client.post("/categories", json={"name": "Beverages"}, headers=staff_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def make_product(client, staff_headers, category):
    def _make(stock=10, description="Mineral water", cost=1.5, price=2.5):
        resp = client.post(
            "/products",
            json={
                "description": description, "stock": stock, "cost": cost,
                "price": price, "category_id": category["id"],
            },
            headers=staff_headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _make


@pytest.fixture
def stock_of(client, staff_headers):
    def _stock(product_id):
        resp = client.get(f"/products/{product_id}", headers=staff_headers)
        assert resp.status_code == 200, resp.text
        return resp.json()["stock"]
    return _stock
