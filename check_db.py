#!/usr/bin/env python3
"""
Quick database connection check script
"""
from sqlalchemy import inspect, text

from app.config import settings
from app.database import Database

EXPECTED_TABLES = ("customers", "products", "orders", "order_items")


def check_database():
    """Check if database connection works and the order tables exist"""
    print("🔍 Checking database connection...")
    print(f"   Environment: {settings.ENV}")
    print(f"   Database URL: {settings.masked_database_url()}")
    print("")

    database = Database.from_settings(settings)
    try:
        with database.engine.connect() as conn:
            version = conn.execute(text("SELECT version();")).fetchone()[0]
        print("✅ Database connection successful!")
        print(f"   PostgreSQL version: {version.split(',')[0]}")

        existing = set(inspect(database.engine).get_table_names())
        for table in EXPECTED_TABLES:
            mark = "✅" if table in existing else "❌"
            print(f"   {mark} {table}")
        if not existing.issuperset(EXPECTED_TABLES):
            print("")
            print("💡 Missing tables: run python create_tables.py (or alembic upgrade head), then python seed.py")
        return True
    except Exception as e:
        print("❌ Database connection failed!")
        print(f"   Error: {e}")
        print("")
        print("💡 Troubleshooting:")
        print("   1. Check if PostgreSQL is running:")
        print("      pg_isready")
        print("")
        print("   2. Check DATABASE_URL or DB_HOST/DB_PORT/DB_NAME/DB_USER/DB_PASSWORD in .env")
        return False
    finally:
        database.close()


if __name__ == "__main__":
    success = check_database()
    exit(0 if success else 1)
