"""
Shopify passthrough routes: customers and orders straight from the Admin API.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.http.dependencies import get_shopify_client
from app.services.shopify_client import MAX_PAGE_LIMIT, ShopifyClient

router = APIRouter()


@router.get("/customers")
async def list_customers(
    limit: int = Query(50, ge=1, le=MAX_PAGE_LIMIT),
    page_info: Optional[str] = Query(None),
    query: Optional[str] = Query(None),
    client: ShopifyClient = Depends(get_shopify_client),
):
    """One page of customers, or a search when query is given."""
    if query:
        data = await client.search_customers(query, limit)
    else:
        data = await client.get_customers(limit, page_info)
    return {
        "success": True,
        "customers": data.get("customers") or [],
        "pagination": data.get("pagination"),
    }


@router.get("/customers/{customer_id}")
async def get_customer(customer_id: str, client: ShopifyClient = Depends(get_shopify_client)):
    data = await client.get_customer(customer_id)
    return {"success": True, "customer": data.get("customer")}


@router.get("/orders")
async def list_orders(
    limit: int = Query(50, ge=1, le=MAX_PAGE_LIMIT),
    page_info: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    customer_id: Optional[str] = Query(None),
    fetch_all: bool = Query(False),
    client: ShopifyClient = Depends(get_shopify_client),
):
    """
    Orders for the store, or for one customer when customer_id is given.
    fetch_all follows every page (partial result if a later page fails).
    """
    if customer_id:
        data = await client.get_customer_orders(customer_id, limit, status)
        orders = data.get("orders") or []
        return {
            "success": True,
            "orders": orders,
            "pagination": data.get("pagination"),
            "totalCount": len(orders),
            "hasMore": bool((data.get("pagination") or {}).get("next_page_info")),
        }
    data = await client.get_orders(limit, page_info, status, fetch_all)
    return {"success": True, **data}


@router.get("/orders/{order_id}")
async def get_order(order_id: str, client: ShopifyClient = Depends(get_shopify_client)):
    data = await client.get_order(order_id)
    return {"success": True, "order": data.get("order")}
