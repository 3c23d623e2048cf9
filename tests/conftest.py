"""
Shared fixtures: in-memory SQLite database with the default catalog, Shopify payload builders.
"""
import json
from decimal import Decimal

import httpx
import pytest

from app.database import Database
from app.models import Product
from app.services.catalog import seed_products
from app.services.shopify_client import ShopifyClient, ShopifyRateLimiter


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.close()


@pytest.fixture
def db_session(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def products(db_session):
    """Default catalog plus one inactive product (MOLD01)."""
    seed_products(db_session)
    db_session.add(Product(
        product_code="MOLD01",
        product_name="Discontinued Tee",
        base_price=Decimal("99.00"),
        available_colors=["Black"],
        available_sizes=["M"],
        is_active=False,
    ))
    db_session.commit()
    return {p.product_code: p for p in db_session.query(Product).all()}


def make_line_item(sku="MTSH09-BLK-M", variant_title="Black / M", price="299.99"):
    return {"sku": sku, "variant_title": variant_title, "price": price, "quantity": 1}


def make_shopify_order(order_number=1001, line_items=None, **overrides):
    order = {
        "id": 5550000000 + int(order_number),
        "order_number": order_number,
        "created_at": "2025-07-14T10:30:00+05:30",
        "total_price": "549.00",
        "phone": "+919876543210",
        "note": "Leave at door",
        "payment_gateway_names": ["razorpay"],
        "fulfillment_status": None,
        "fulfillments": [],
        "customer": {
            "id": 7001,
            "first_name": "Asha",
            "last_name": "Rao",
            "email": "asha@example.com",
            "phone": "+919876543210",
            "default_address": {"province": "Karnataka"},
        },
        "billing_address": {"phone": "+919876543210", "province": "Karnataka"},
        "shipping_address": {"province": "Karnataka"},
        "line_items": line_items if line_items is not None else [make_line_item()],
    }
    order.update(overrides)
    return order


def json_response(payload, status_code=200, headers=None):
    return httpx.Response(status_code, content=json.dumps(payload), headers={
        "content-type": "application/json",
        **(headers or {}),
    })


@pytest.fixture
def make_client():
    """Build a ShopifyClient over an httpx.MockTransport handler."""
    def _make(handler, **kwargs):
        kwargs.setdefault("page_delay", 0)
        kwargs.setdefault("rate_limiter", ShopifyRateLimiter(calls_per_second=0))
        return ShopifyClient(
            "test-shop.myshopify.com",
            "shpat_test",
            api_version="2025-07",
            transport=httpx.MockTransport(handler),
            **kwargs,
        )
    return _make
