"""
Central API route registration. All HTTP controllers are mounted here with /api prefix.
"""
import logging
from fastapi import FastAPI

from app.http.controllers import (
    customers,
    orders,
    shopify,
)

logger = logging.getLogger(__name__)


def register_routes(app: FastAPI, settings) -> None:
    """Register all API routers. Call from main.py after creating the FastAPI app."""
    app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
    app.include_router(customers.router, prefix="/api/customers", tags=["customers"])
    app.include_router(shopify.router, prefix="/api/shopify", tags=["shopify"])
    if not settings.SHOPIFY_CONFIGURED:
        logger.warning("Shopify is not configured; /api/shopify and /api/orders/sync will return 503")
