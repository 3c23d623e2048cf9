"""
Catalog lookups for line items.

Upstream SKUs are inconsistent ("MTRA04-BLK-XL", "miler-MTSH09-M"), so a SKU is mapped to
a product code by substring. Codes are checked in PRODUCT_CODE_PRIORITY order and the
first match wins.
"""
import logging
from typing import Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.models import Product
from app.services.errors import ProductNotFound

logger = logging.getLogger(__name__)

# (substring found in SKU, canonical product code), highest priority first
PRODUCT_CODE_PRIORITY: Tuple[Tuple[str, str], ...] = (
    ("MTRA04", "MTRA04"),
    ("MTSH09", "MTSH09"),
    ("MTSH06", "MTSH06"),
    ("MPYJ02", "MPYJ02"),
    ("MSHR05", "MSHR05"),
)


def resolve_product_code(
    sku: Optional[str],
    priority: Sequence[Tuple[str, str]] = PRODUCT_CODE_PRIORITY,
) -> Optional[str]:
    """Return the canonical product code for a raw SKU, or None when nothing matches."""
    if not sku:
        return None
    for needle, code in priority:
        if needle in sku:
            return code
    return None


def get_active_product(db: Session, product_code: Optional[str]) -> Product:
    """Active catalog row for a product code. Raises ProductNotFound otherwise."""
    if not product_code:
        raise ProductNotFound(product_code)
    product = (
        db.query(Product)
        .filter(Product.product_code == product_code, Product.is_active.is_(True))
        .first()
    )
    if not product:
        logger.debug("No active product for code %s", product_code)
        raise ProductNotFound(product_code)
    return product
