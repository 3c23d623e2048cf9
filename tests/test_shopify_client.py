"""
Shopify client tests over httpx.MockTransport
"""
import asyncio
import threading

import httpx
import pytest

from app.services.errors import ShopifyAPIError, ShopifyConfigError, ShopifyTimeoutError
from app.services.shopify_client import ShopifyClient, ShopifyRateLimiter, parse_link_page_info

from conftest import json_response

BASE = "https://test-shop.myshopify.com/admin/api/2025-07"


def link(next_info=None, prev_info=None):
    parts = []
    if prev_info:
        parts.append(f'<{BASE}/orders.json?limit=250&page_info={prev_info}>; rel="previous"')
    if next_info:
        parts.append(f'<{BASE}/orders.json?limit=250&page_info={next_info}>; rel="next"')
    return ", ".join(parts)


class TestParseLink:

    def test_next_and_previous(self):
        header = link(next_info="abc123", prev_info="zzz999")
        assert parse_link_page_info(header) == {"next_page_info": "abc123", "prev_page_info": "zzz999"}

    def test_missing_header(self):
        assert parse_link_page_info(None) == {"next_page_info": None, "prev_page_info": None}
        assert parse_link_page_info("") == {"next_page_info": None, "prev_page_info": None}


class TestConfig:

    def test_missing_token_fails(self):
        with pytest.raises(ShopifyConfigError):
            ShopifyClient("test-shop.myshopify.com", "")

    def test_missing_shop_fails(self):
        with pytest.raises(ShopifyConfigError):
            ShopifyClient("", "shpat_test")

    def test_base_url_normalized(self):
        client = ShopifyClient("https://Test-Shop.myshopify.com/", "shpat_test", api_version="2025-07")
        assert client.base_url == f"{BASE}/"


class TestRequests:

    def test_headers_and_single_page(self, make_client):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["token"] = request.headers.get("X-Shopify-Access-Token")
            return json_response(
                {"orders": [{"id": 1}, {"id": 2}]},
                headers={"link": link(next_info="p2")},
            )

        client = make_client(handler)
        data = asyncio.run(client.get_orders(limit=2, status="open"))
        assert seen["token"] == "shpat_test"
        assert seen["url"].startswith(f"{BASE}/orders.json?")
        assert "status=open" in seen["url"]
        assert data["pagination"]["next_page_info"] == "p2"
        assert data["hasMore"] is True
        assert data["totalCount"] == 2

    def test_page_info_request_drops_status(self, make_client):
        seen = []

        def handler(request):
            seen.append(dict(request.url.params))
            return json_response({"orders": []})

        client = make_client(handler)
        asyncio.run(client.get_orders(limit=500, page_info="p2", status="any"))
        assert seen == [{"limit": "250", "page_info": "p2"}]

    def test_customer_endpoints(self, make_client):
        paths = []

        def handler(request):
            paths.append((request.url.path, dict(request.url.params)))
            if request.url.path.endswith("/customers/7001.json"):
                return json_response({"customer": {"id": 7001}})
            if request.url.path.endswith("/orders/55.json"):
                return json_response({"order": {"id": 55}})
            if request.url.path.endswith("/count.json"):
                return json_response({"count": 12})
            return json_response({"customers": [], "orders": []})

        client = make_client(handler)

        async def run():
            return (
                await client.get_customer(7001),
                await client.get_order(55),
                await client.search_customers("phone:9876543210", limit=10),
                await client.get_customer_orders("7001", limit=100),
                await client.get_customers(limit=5, page_info="c2"),
                await client.get_orders_count(status="any"),
                await client.get_customers_count(),
            )

        customer, order, _, _, _, orders_count, customers_count = asyncio.run(run())
        assert customer["customer"]["id"] == 7001
        assert order["order"]["id"] == 55
        assert orders_count == 12
        assert customers_count == 12
        prefix = "/admin/api/2025-07/"
        assert (prefix + "customers/search.json", {"query": "phone:9876543210", "limit": "10"}) in paths
        assert (prefix + "customers/7001/orders.json", {"limit": "100"}) in paths
        assert (prefix + "customers.json", {"limit": "5", "page_info": "c2"}) in paths
        assert (prefix + "orders/count.json", {"status": "any"}) in paths

    def test_error_status_raises(self, make_client):
        client = make_client(lambda request: json_response({"errors": "Not Found"}, status_code=404))
        with pytest.raises(ShopifyAPIError) as exc:
            asyncio.run(client.get_order(1))
        assert exc.value.status_code == 404
        assert exc.value.rate_limited is False

    def test_timeout_raises_timeout_error(self, make_client):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler)
        with pytest.raises(ShopifyTimeoutError) as exc:
            asyncio.run(client.get_customers())
        assert isinstance(exc.value, TimeoutError)


class TestFetchAll:

    def _paged_handler(self, pages, fail_on=None, calls=None):
        def handler(request):
            page_info = request.url.params.get("page_info")
            page = int(page_info[1:]) if page_info else 1
            if calls is not None:
                calls.append(page)
            if page == fail_on:
                return json_response({"errors": "Internal error"}, status_code=500)
            next_info = f"p{page + 1}" if page < pages else None
            orders = [{"id": page * 100 + i} for i in range(2)]
            return json_response({"orders": orders}, headers={"link": link(next_info=next_info)})
        return handler

    def test_follows_every_page(self, make_client):
        client = make_client(self._paged_handler(pages=5))
        data = asyncio.run(client.get_orders(fetch_all=True))
        assert data["totalCount"] == 10
        assert data["hasMore"] is False
        assert [o["id"] for o in data["orders"]][:3] == [100, 101, 200]

    def test_partial_result_when_page_three_fails(self, make_client):
        calls = []
        client = make_client(self._paged_handler(pages=5, fail_on=3, calls=calls))
        data = asyncio.run(client.get_all_orders())
        assert calls == [1, 2, 3]
        assert [o["id"] for o in data["orders"]] == [100, 101, 200, 201]
        assert data["totalCount"] == 4

    def test_timeout_mid_loop_keeps_pages(self, make_client):
        def handler(request):
            if request.url.params.get("page_info"):
                raise httpx.ConnectTimeout("slow", request=request)
            return json_response({"orders": [{"id": 1}]}, headers={"link": link(next_info="p2")})

        client = make_client(handler)
        data = asyncio.run(client.get_all_orders())
        assert data["orders"] == [{"id": 1}]

    def test_page_delay_applied_between_pages(self, make_client, monkeypatch):
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        monkeypatch.setattr("app.services.shopify_client.asyncio.sleep", fake_sleep)
        client = make_client(self._paged_handler(pages=3), page_delay=0.25)
        asyncio.run(client.get_all_orders())
        assert sleeps == [0.25, 0.25]


class TestRateLimiter:

    def test_spacing_between_calls(self, monkeypatch):
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        monkeypatch.setattr("app.services.shopify_client.asyncio.sleep", fake_sleep)
        limiter = ShopifyRateLimiter(calls_per_second=2)

        async def call():
            return "ok"

        async def run():
            return [await limiter.execute(call) for _ in range(3)]

        assert asyncio.run(run()) == ["ok", "ok", "ok"]
        assert len(sleeps) == 2
        assert all(0 < s <= 0.5 for s in sleeps)
        status = limiter.status()
        assert status["minInterval"] == 0.5
        assert status["queueLength"] == 0
        assert status["processing"] is False

    def test_built_outside_event_loop(self):
        # dependencies run in a worker thread with no event loop
        built = []
        worker = threading.Thread(target=lambda: built.append(ShopifyRateLimiter(calls_per_second=0)))
        worker.start()
        worker.join()
        limiter = built[0]

        async def call():
            return "ok"

        assert asyncio.run(limiter.execute(call)) == "ok"
