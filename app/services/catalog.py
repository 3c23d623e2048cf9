"""
Default product catalog and an idempotent seeding helper.
"""
import logging
from decimal import Decimal
from typing import List

from sqlalchemy.orm import Session

from app.models import Product

logger = logging.getLogger(__name__)

DEFAULT_COLORS = [
    "Airforce Blue", "Royal Blue", "Rama Green", "Yellow", "Black", "White",
    "Light Gray", "Peach", "Dark Gray", "Navy Blue", "Maroon", "Forest Green",
    "Bottle Green", "Wine", "Sky Blue", "Neon",
]

DEFAULT_SIZES = ["M", "L", "XL", "2XL", "3XL", "4XL"]

DEFAULT_PRODUCTS = [
    {"product_code": "MTSH09", "product_name": "Raglan T-Shirt", "category": "T-Shirt",
     "description": "Premium quality raglan sleeve t-shirt", "base_price": Decimal("299.99")},
    {"product_code": "MTSH06", "product_name": "Polo T-Shirt", "category": "Polo",
     "description": "Classic polo t-shirt with collar", "base_price": Decimal("399.99")},
    {"product_code": "MSHR05", "product_name": "Athletic Short", "category": "Shorts",
     "description": "Comfortable athletic shorts for sports", "base_price": Decimal("199.99")},
    {"product_code": "MPYJ02", "product_name": "Jogger Pants", "category": "Pants",
     "description": "Premium jogger pants with elastic waistband", "base_price": Decimal("499.99")},
    {"product_code": "MTRA04", "product_name": "Track Jacket", "category": "Jacket",
     "description": "Lightweight track jacket with zipper", "base_price": Decimal("699.99")},
]


def seed_products(db: Session) -> List[Product]:
    """Insert any default product that is missing. Existing rows are left as they are."""
    created = []
    for entry in DEFAULT_PRODUCTS:
        if db.query(Product).filter(Product.product_code == entry["product_code"]).first():
            continue
        product = Product(
            available_colors=list(DEFAULT_COLORS),
            available_sizes=list(DEFAULT_SIZES),
            is_active=True,
            **entry,
        )
        db.add(product)
        created.append(product)
    db.commit()
    if created:
        logger.info("Seeded %s product(s): %s", len(created), ", ".join(p.product_code for p in created))
    return created
