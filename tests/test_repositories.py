from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from database import Base
from models.category import Category
from models.movement import Movement
from models.product import Product
from repositories.categories import CategoryRepository
from repositories.movements import MovementRepository
from repositories.products import ProductRepository
from services.exceptions import CategoryInUse, MovementNotFound, ProductInUse, ProductNotFound
from services.ledger import MovementLedger, ProductLocks


def _ledger(session):
    return MovementLedger(
        ProductRepository(session), MovementRepository(session), locks=ProductLocks(), transaction=session
    )


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded(db):
    beverages = Category(name="Beverages")
    stationery = Category(name="Stationery", is_active=False)
    db.add_all([beverages, stationery])
    db.flush()
    water = Product(description="Mineral water", stock=10, cost=1, price=2, category_id=beverages.id)
    paper = Product(description="A4 paper", stock=3, cost=4, price=6, category_id=stationery.id)
    db.add_all([water, paper])
    db.commit()
    return {"beverages": beverages, "stationery": stationery, "water": water, "paper": paper}


def _movement(db, product, type_, quantity, when, user="clerk", unit_price=2):
    movement = MovementRepository(db).insert({
        "product_id": product.id, "type": type_, "quantity": quantity,
        "unit_price": unit_price, "user": user,
    })
    movement.created_at = when
    db.commit()
    return movement


class TestMovementRepository:
    def test_insert_computes_total(self, db, seeded):
        movement = _movement(db, seeded["water"], "entry", 4, datetime(2026, 5, 1), unit_price=2.5)
        assert Decimal(str(movement.total)) == Decimal("10.00")

    def test_update_recomputes_total(self, db, seeded):
        movement = _movement(db, seeded["water"], "entry", 4, datetime(2026, 5, 1))
        updated = MovementRepository(db).update(movement.id, {"quantity": 6})
        assert Decimal(str(updated.total)) == Decimal("12.00")

        updated = MovementRepository(db).update(movement.id, {"description": "recount"})
        assert Decimal(str(updated.total)) == Decimal("12.00")

    def test_missing_movement(self, db, seeded):
        with pytest.raises(MovementNotFound):
            MovementRepository(db).get_by_id(42)

    def test_select_filters(self, db, seeded):
        water, paper = seeded["water"], seeded["paper"]
        first = _movement(db, water, "entry", 1, datetime(2026, 5, 1, 9))
        second = _movement(db, paper, "exit", 1, datetime(2026, 5, 2, 9), user="maria")
        third = _movement(db, water, "exit", 2, datetime(2026, 5, 3, 9))
        repo = MovementRepository(db)

        assert [m.id for m in repo.select()] == [third.id, second.id, first.id]
        assert [m.id for m in repo.select(product_id=water.id)] == [third.id, first.id]
        assert [m.id for m in repo.select(movement_type="exit")] == [third.id, second.id]
        assert [m.id for m in repo.select(search="MARIA")] == [second.id]
        assert [m.id for m in repo.select(search="water")] == [third.id, first.id]

        window = repo.select(start=datetime(2026, 5, 2), end=datetime(2026, 5, 3, 9))
        assert [m.id for m in window] == [third.id, second.id]

    def test_select_embeds_product(self, db, seeded):
        _movement(db, seeded["water"], "entry", 1, datetime(2026, 5, 1))
        (movement,) = MovementRepository(db).select()
        assert movement.product.description == "Mineral water"

    def test_same_timestamp_orders_by_id(self, db, seeded):
        when = datetime(2026, 5, 1, 12)
        a = _movement(db, seeded["water"], "entry", 1, when)
        b = _movement(db, seeded["water"], "entry", 1, when)
        assert [m.id for m in MovementRepository(db).select()] == [b.id, a.id]


class TestProductRepository:
    def test_get_and_update(self, db, seeded):
        repo = ProductRepository(db)
        product = repo.update(seeded["water"].id, {"stock": 25})
        assert product.stock == 25
        assert repo.get_by_id(seeded["water"].id, for_update=True).stock == 25

    def test_missing_product(self, db, seeded):
        with pytest.raises(ProductNotFound):
            ProductRepository(db).get_by_id(999)

    def test_list_search_matches_category_name(self, db, seeded):
        repo = ProductRepository(db)
        assert [p.description for p in repo.list(search="station")] == ["A4 paper"]
        assert [p.description for p in repo.list(category_id=seeded["beverages"].id)] == ["Mineral water"]

    def test_delete_blocked_by_movements(self, db, seeded):
        _movement(db, seeded["water"], "entry", 1, datetime(2026, 5, 1))
        with pytest.raises(ProductInUse):
            ProductRepository(db).delete(seeded["water"].id)


class TestCategoryRepository:
    def test_active_only(self, db, seeded):
        names = [c.name for c in CategoryRepository(db).list(active_only=True)]
        assert names == ["Beverages"]

    def test_delete_blocked_by_products(self, db, seeded):
        with pytest.raises(CategoryInUse):
            CategoryRepository(db).delete(seeded["beverages"].id)


class FailingMovementRepository(MovementRepository):
    def update(self, movement_id, fields):
        raise OperationalError("UPDATE movements", {}, Exception("disk I/O error"))


class TestLedgerTransaction:
    def test_store_error_rolls_back_stock(self, db, session_factory, seeded):
        water_id = seeded["water"].id
        movement = _ledger(db).create({"product_id": water_id, "type": "entry", "quantity": 5}, user="clerk")

        failing = MovementLedger(
            ProductRepository(db), FailingMovementRepository(db), locks=ProductLocks(), transaction=db
        )
        with pytest.raises(OperationalError):
            failing.update(movement.id, {"quantity": 9})

        with session_factory() as fresh:
            assert fresh.get(Product, water_id).stock == 15
            assert fresh.get(Movement, movement.id).quantity == 5

    def test_create_commits_movement_and_stock_together(self, db, session_factory, seeded):
        paper_id = seeded["paper"].id
        movement = _ledger(db).create({"product_id": paper_id, "type": "exit", "quantity": 3}, user="clerk")

        with session_factory() as fresh:
            assert fresh.get(Product, paper_id).stock == 0
            assert fresh.get(Movement, movement.id).user == "clerk"


class TestStaleSessionEdits:
    """Two sessions on one database: B holds M loaded before A edits it."""

    @pytest.fixture
    def sessions(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'inventory.db'}")
        Base.metadata.create_all(bind=engine)
        factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        a, b = factory(), factory()
        yield factory, a, b
        a.close()
        b.close()
        engine.dispose()

    @pytest.fixture
    def entry(self, sessions):
        factory, a, b = sessions
        category = Category(name="Beverages")
        a.add(category)
        a.flush()
        product = Product(description="Mineral water", stock=10, cost=1, price=2, category_id=category.id)
        a.add(product)
        a.commit()
        movement = _ledger(a).create({"product_id": product.id, "type": "entry", "quantity": 5}, user="clerk")
        return product.id, movement.id

    def test_edit_reverses_committed_quantity(self, sessions, entry):
        factory, a, b = sessions
        product_id, movement_id = entry
        stale = MovementRepository(b).get_by_id(movement_id)
        assert stale.quantity == 5

        _ledger(a).update(movement_id, {"quantity": 8})
        _ledger(b).update(movement_id, {"quantity": 10})

        with factory() as fresh:
            assert fresh.get(Product, product_id).stock == 20
            assert fresh.get(Movement, movement_id).quantity == 10

    def test_delete_reverses_committed_quantity(self, sessions, entry):
        factory, a, b = sessions
        product_id, movement_id = entry
        MovementRepository(b).get_by_id(movement_id)

        _ledger(a).update(movement_id, {"quantity": 8})
        _ledger(b).delete(movement_id)

        with factory() as fresh:
            assert fresh.get(Product, product_id).stock == 10
            assert fresh.get(Movement, movement_id) is None
