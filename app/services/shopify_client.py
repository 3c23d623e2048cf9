"""
Shopify Admin REST client for one store (static access token).
Every request is bounded by a timeout. Cursor pagination follows the Link header
(page_info). get_all_orders keeps what it already fetched if a later page fails.
"""
import asyncio
import logging
import re
import time
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar
from urllib.parse import parse_qs, urlparse

import httpx

from app.config import settings
from app.services.errors import ShopifyAPIError, ShopifyConfigError, ShopifyTimeoutError

logger = logging.getLogger(__name__)

MAX_PAGE_LIMIT = 250  # Shopify hard cap per page

T = TypeVar("T")

_LINK_PART = re.compile(r'<([^>]+)>\s*;\s*rel="?([a-z]+)"?', re.IGNORECASE)


def parse_link_page_info(link_header: Optional[str]) -> Dict[str, Optional[str]]:
    """Link header -> {"next_page_info": ..., "prev_page_info": ...}."""
    result: Dict[str, Optional[str]] = {"next_page_info": None, "prev_page_info": None}
    if not link_header:
        return result
    for url, rel in _LINK_PART.findall(link_header):
        page_info = parse_qs(urlparse(url).query).get("page_info", [None])[0]
        if rel.lower() == "next":
            result["next_page_info"] = page_info
        elif rel.lower() == "previous":
            result["prev_page_info"] = page_info
    return result


def _log_shopify_response(method: str, url: str, status: int, body_preview: str = "") -> None:
    """Log every Shopify API call. No sensitive data."""
    if status >= 400:
        logger.warning("Shopify API %s %s -> %s %s", method, url, status, body_preview[:200] if body_preview else "")
    else:
        logger.info("Shopify API %s %s -> %s", method, url, status)


def _base_url(shop_url: str, api_version: str) -> str:
    shop = shop_url.strip().lower()
    shop = re.sub(r"^https?://", "", shop).rstrip("/")
    return f"https://{shop}/admin/api/{api_version}/"


def _headers(access_token: str) -> dict:
    return {
        "X-Shopify-Access-Token": access_token,
        "Content-Type": "application/json",
    }


def _limit(limit: int) -> str:
    return str(max(1, min(int(limit), MAX_PAGE_LIMIT)))


class ShopifyRateLimiter:
    """Spaces call starts at least 1/calls_per_second apart (Shopify allows ~2/s)."""

    def __init__(self, calls_per_second: float = 1.5):
        self.min_interval = 1.0 / calls_per_second if calls_per_second > 0 else 0.0
        self.last_call_time = 0.0
        # created on first use, inside the running loop
        self._lock: Optional[asyncio.Lock] = None
        self._waiting = 0
        self._processing = False

    async def execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        if self._lock is None:
            self._lock = asyncio.Lock()
        self._waiting += 1
        try:
            async with self._lock:
                wait = self.min_interval - (time.monotonic() - self.last_call_time)
                if wait > 0:
                    logger.debug("Rate limiting: waiting %.0fms before next API call", wait * 1000)
                    await asyncio.sleep(wait)
                self.last_call_time = time.monotonic()
        finally:
            self._waiting -= 1
        self._processing = True
        try:
            return await fn()
        finally:
            self._processing = self._waiting > 0

    def status(self) -> dict:
        return {
            "queueLength": self._waiting,
            "processing": self._processing,
            "lastCallTime": self.last_call_time,
            "minInterval": self.min_interval,
        }


class ShopifyClient:
    """One shared httpx.AsyncClient per process; close with aclose()."""

    def __init__(
        self,
        shop_url: Optional[str] = None,
        access_token: Optional[str] = None,
        *,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        page_delay: Optional[float] = None,
        rate_limiter: Optional[ShopifyRateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        shop_url = (shop_url if shop_url is not None else settings.SHOPIFY_SHOP_URL).strip()
        access_token = (access_token if access_token is not None else settings.SHOPIFY_APP_ACCESS_TOKEN).strip()
        if not shop_url or not access_token:
            raise ShopifyConfigError(
                "Missing Shopify configuration. Please check SHOPIFY_SHOP_URL and SHOPIFY_APP_ACCESS_TOKEN"
            )
        self.base_url = _base_url(shop_url, api_version or settings.SHOPIFY_API_VERSION)
        self.timeout = timeout if timeout is not None else settings.SHOPIFY_TIMEOUT
        self.page_delay = page_delay if page_delay is not None else settings.SHOPIFY_PAGE_DELAY
        self.rate_limiter = rate_limiter or ShopifyRateLimiter(settings.SHOPIFY_CALLS_PER_SECOND)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=_headers(access_token),
            timeout=self.timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings) -> "ShopifyClient":
        return cls(
            settings.SHOPIFY_SHOP_URL,
            settings.SHOPIFY_APP_ACCESS_TOKEN,
            api_version=settings.SHOPIFY_API_VERSION,
            timeout=settings.SHOPIFY_TIMEOUT,
            page_delay=settings.SHOPIFY_PAGE_DELAY,
            rate_limiter=ShopifyRateLimiter(settings.SHOPIFY_CALLS_PER_SECOND),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> httpx.Response:
        try:
            response = await self._client.get(endpoint, params=params)
        except httpx.TimeoutException as e:
            logger.warning("Shopify API GET %s timed out after %ss", endpoint, self.timeout)
            raise ShopifyTimeoutError("Request timeout - Shopify API took too long to respond") from e
        body = response.text[:300] if response.status_code >= 400 else ""
        _log_shopify_response("GET", endpoint, response.status_code, body)
        if response.status_code >= 400:
            raise ShopifyAPIError(response.status_code, response.text)
        return response

    async def _get_json(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> dict:
        response = await self._get(endpoint, params)
        return response.json()

    async def _get_page(self, endpoint: str, params: Dict[str, str]) -> dict:
        response = await self._get(endpoint, params)
        data = response.json()
        data["pagination"] = parse_link_page_info(response.headers.get("link"))
        return data

    async def get_customers(self, limit: int = 50, page_info: Optional[str] = None) -> dict:
        params = {"limit": _limit(limit)}
        if page_info:
            params["page_info"] = page_info
        return await self._get_page("customers.json", params)

    async def search_customers(self, query: str, limit: int = 50) -> dict:
        return await self._get_page("customers/search.json", {"query": query, "limit": _limit(limit)})

    async def get_customer(self, customer_id: Any) -> dict:
        return await self._get_json(f"customers/{customer_id}.json")

    async def get_customer_orders(self, customer_id: Any, limit: int = 50, status: Optional[str] = None) -> dict:
        params = {"limit": _limit(limit)}
        if status:
            params["status"] = status
        return await self._get_page(f"customers/{customer_id}/orders.json", params)

    async def get_order(self, order_id: Any) -> dict:
        return await self._get_json(f"orders/{order_id}.json")

    async def get_orders(
        self,
        limit: int = 50,
        page_info: Optional[str] = None,
        status: Optional[str] = None,
        fetch_all: bool = False,
    ) -> dict:
        """One page of orders, or every page when fetch_all is set."""
        if fetch_all:
            return await self.get_all_orders(status)
        params = {"limit": _limit(limit)}
        if page_info:
            # page_info requests reject filter params other than limit
            params["page_info"] = page_info
        elif status:
            params["status"] = status
        data = await self._get_page("orders.json", params)
        orders = data.get("orders") or []
        data["totalCount"] = len(orders)
        data["hasMore"] = bool(data["pagination"]["next_page_info"])
        return data

    async def get_all_orders(self, status: Optional[str] = None, page_delay: Optional[float] = None) -> dict:
        """
        Follow rel=next until exhausted. A failure on any page stops the loop and
        returns the orders gathered so far.
        """
        delay = self.page_delay if page_delay is None else page_delay
        all_orders: list = []
        next_page_info: Optional[str] = None
        page = 0
        try:
            while True:
                page += 1
                params = {"limit": str(MAX_PAGE_LIMIT)}
                if next_page_info:
                    params["page_info"] = next_page_info
                elif status:
                    params["status"] = status
                data = await self._get_page("orders.json", params)
                orders = data.get("orders") or []
                all_orders.extend(orders)
                next_page_info = data["pagination"]["next_page_info"]
                logger.info(
                    "Shopify orders page %s: got %s (total so far: %s, more: %s)",
                    page, len(orders), len(all_orders), bool(next_page_info),
                )
                if not next_page_info:
                    break
                if delay > 0:
                    await asyncio.sleep(delay)
        except Exception as e:
            logger.error(
                "Error fetching all orders at page %s: %s; returning %s order(s) fetched before the error",
                page, e, len(all_orders),
            )
        logger.info("Shopify orders: got %s order(s) across %s page(s)", len(all_orders), page)
        return {
            "orders": all_orders,
            "pagination": {"next_page_info": None, "prev_page_info": None},
            "totalCount": len(all_orders),
            "hasMore": False,
        }

    async def get_orders_count(self, status: Optional[str] = None) -> int:
        params = {"status": status} if status else None
        data = await self._get_json("orders/count.json", params)
        return int(data.get("count", 0) or 0)

    async def get_customers_count(self) -> int:
        data = await self._get_json("customers/count.json")
        return int(data.get("count", 0) or 0)
