import os
import random
import sys

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from config import settings
from database import SessionLocal, init_db
from models.category import Category
from models.movement import Movement
from models.product import Product
from models.users import User
from repositories.movements import MovementRepository
from repositories.products import ProductRepository
from services.exceptions import InsufficientStock
from services.ledger import MovementLedger
from utils.hashing import get_password_hash

# Configuration
SAMPLE_CATEGORIES = {
    "Beverages": ["Mineral water 1.5L", "Orange juice 1L", "Green tea 20 bags"],
    "Cleaning": ["Dish soap 500ml", "Floor cleaner 1L"],
    "Stationery": ["A4 paper ream", "Blue pen box", "Stapler"],
}
MOVEMENTS_PER_PRODUCT = 4
# End Configuration


def ensure_admin(session) -> User:
    """Creates the first administrator from ADMIN_USERNAME / ADMIN_PASSWORD."""
    admin = session.query(User).filter(User.username == settings.ADMIN_USERNAME).first()
    if admin:
        return admin
    admin = User(
        username=settings.ADMIN_USERNAME,
        password_hash=get_password_hash(settings.ADMIN_PASSWORD),
        role="admin",
    )
    session.add(admin)
    session.commit()
    print(f"Created administrator '{admin.username}'.")
    return admin


def load_sample_data(session, admin: User) -> None:
    # Clean existing inventory data; users are preserved
    session.query(Movement).delete()
    session.query(Product).delete()
    session.query(Category).delete()
    session.commit()

    products = []
    for name, descriptions in SAMPLE_CATEGORIES.items():
        category = Category(name=name, description=f"{name} sold in store", is_active=True)
        session.add(category)
        session.flush()
        for description in descriptions:
            cost = round(random.uniform(1.0, 40.0), 2)
            product = Product(
                description=description,
                stock=random.randint(0, 50),
                cost=cost,
                price=round(cost * random.uniform(1.2, 1.8), 2),
                category_id=category.id,
            )
            session.add(product)
            products.append(product)
    session.commit()
    print(f"Inserted {len(products)} products in {len(SAMPLE_CATEGORIES)} categories.")

    # Movements go through the ledger so stock stays consistent
    ledger = MovementLedger(ProductRepository(session), MovementRepository(session), transaction=session)
    created = 0
    for product in products:
        for _ in range(MOVEMENTS_PER_PRODUCT):
            draft = {
                "product_id": product.id,
                "type": random.choice(["entry", "entry", "exit"]),
                "quantity": random.randint(1, 20),
                "unit_price": float(product.cost),
                "reason": "Seed data",
            }
            try:
                ledger.create(draft, user=admin.username)
                created += 1
            except InsufficientStock:
                continue
    print(f"Recorded {created} movements.")


def populate_database():
    """Main execution function to populate database."""
    init_db()
    session = SessionLocal()
    try:
        admin = ensure_admin(session)
        load_sample_data(session, admin)
    finally:
        session.close()


if __name__ == "__main__":
    populate_database()
