"""
Order routes
"""
import logging
from typing import Any, List

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.http.dependencies import get_shopify_client
from app.http.requests import OrderPatch
from app.services.order_batch import (
    DEFAULT_SYNC_BATCH_SIZE,
    bulk_insert_orders,
    load_customer_export,
    submit_orders,
    sync_customer_orders,
)
from app.services.order_normalizer import normalize_order_payload
from app.services.order_upsert import apply_order_patch, create_or_update_order, get_order, serialize_order
from app.services.shopify_client import ShopifyClient

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/create-v2")
async def create_order(payload: Any = Body(...), db: Session = Depends(get_db)):
    """Create or update one order from a manual-entry or Shopify-shaped payload."""
    variables, is_shopify = normalize_order_payload(payload)
    result = create_or_update_order(db, variables, is_shopify=is_shopify)
    return {
        "success": True,
        "message": result["message"],
        "order": serialize_order(result["order"]),
        "isUpdate": result["isUpdate"],
    }


@router.post("/bulk-insert")
async def bulk_insert(rows: List[dict] = Body(...), db: Session = Depends(get_db)):
    """Operator CSV rows. Failed rows are listed in errors; the rest are saved."""
    result = bulk_insert_orders(db, rows)
    return {
        "message": "Orders processed",
        "results": result["results"],
        "errors": result["errors"],
    }


@router.post("/batch")
async def submit_batch(payloads: List[Any] = Body(...), db: Session = Depends(get_db)):
    """Array of canonical or Shopify-shaped orders -> {results, errors}."""
    result = submit_orders(db, payloads)
    return {
        "success": not result["errors"],
        "results": result["results"],
        "errors": result["errors"],
    }


@router.post("/sync")
async def sync_orders(
    batch: bool = Query(False),
    batch_size: int = Query(DEFAULT_SYNC_BATCH_SIZE, alias="batchSize", ge=1),
    db: Session = Depends(get_db),
    client: ShopifyClient = Depends(get_shopify_client),
):
    """Full Shopify sync over the customer export."""
    rate_limiter_status = client.rate_limiter.status()
    try:
        customers = load_customer_export()
    except FileNotFoundError:
        raise HTTPException(
            status_code=500,
            detail=f"Customer export not found at {settings.SHOPIFY_CUSTOMERS_FILE}",
        )
    logger.info("Starting %s sync for %s customer(s)", "batch" if batch else "regular", len(customers))
    result = await sync_customer_orders(
        db,
        client,
        customers,
        batch_size=batch_size if batch else None,
        batch_pause=2.0 if batch else 0.0,
        rate_limit_wait=settings.SHOPIFY_RATE_LIMIT_WAIT * 1.5 if batch else None,
    )
    return {
        "success": True,
        "message": result["message"],
        "rateLimiterStatus": rate_limiter_status,
        "syncType": "batch" if batch else "regular",
        "batchSize": batch_size if batch else None,
        "results": result["results"],
        "errors": result["errors"],
        "skipped": result["skipped"],
    }


@router.get("/sync")
async def sync_status(client: ShopifyClient = Depends(get_shopify_client)):
    """Rate limiter snapshot for the sync screen."""
    return {"success": True, "rateLimiterStatus": client.rate_limiter.status()}


@router.get("/{order_id}")
async def get_order_detail(order_id: str, db: Session = Depends(get_db)):
    """Get order details by business order id"""
    order = get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return {"order": serialize_order(order)}


@router.put("/{order_id}")
async def update_order(order_id: str, patch: OrderPatch, db: Session = Depends(get_db)):
    """Update order workflow fields. Line items are not editable here."""
    order = get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if not patch.model_fields_set:
        raise HTTPException(status_code=400, detail="No updatable fields supplied")
    updated = apply_order_patch(db, order, patch)
    return {"success": True, "order": serialize_order(updated)}
