"""
Create base tables from SQLAlchemy models.
Run this on a fresh database before seeding when migrations are not used.
"""
from app.config import settings
from app.database import Database

database = Database.from_settings(settings)
try:
    database.create_all()
    print("Base tables created (or already exist).")
finally:
    database.close()
