"""
Request-scoped dependencies shared by controllers.
"""
from fastapi import Request

from app.config import settings
from app.services.shopify_client import ShopifyClient


def get_shopify_client(request: Request) -> ShopifyClient:
    """Process-wide Shopify client, created on first use (ShopifyConfigError if unconfigured)."""
    client = getattr(request.app.state, "shopify_client", None)
    if client is None:
        client = ShopifyClient.from_settings(settings)
        request.app.state.shopify_client = client
    return client
