"""
Database seed script
"""
import logging

from app.config import settings
from app.database import Database
from app.models import Product
from app.services.catalog import seed_products


def seed_database():
    """Seed the database with the default product catalog"""
    database = Database.from_settings(settings)
    database.create_all()
    db = database.session()

    try:
        created = seed_products(db)
        for product in created:
            print(f"✅ Created product: {product.product_code} ({product.product_name})")
        total = db.query(Product).count()
        print(f"✅ Catalog has {total} product(s)")
    except Exception as e:
        db.rollback()
        print(f"❌ Seeding failed: {e}")
        raise
    finally:
        db.close()
        database.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    seed_database()
