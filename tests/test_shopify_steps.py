"""Shopify action steps against a mocked Admin REST API.

Tests:
- Credential checks (domain first, then token) before any HTTP call
- Domain normalization and API version in request URLs
- Response field mapping for orders, products, inventory levels
- Upstream error bodies surfaced as the failure message
- update-inventory: adjustment parsed before any call, no write without a level
"""

from __future__ import annotations

import functools
import json

import httpx
import pytest

from workflow_builder.credentials import StaticCredentialResolver
from workflow_builder.plugins.shopify import (
    ShopifyClient,
    create_product_step,
    get_order_step,
    list_orders_step,
    update_inventory_step,
)
from workflow_builder.plugins.shopify.steps.list_orders import build_query
from workflow_builder.plugins.shopify.steps.update_inventory import INVALID_ADJUSTMENT, LEVEL_NOT_FOUND
from workflow_builder.steps.handler import FailureKind, MemoryStepRecorder

SHOP_REF = "shop-main"
CREDS = {
    "SHOPIFY_STORE_DOMAIN": "https://acme.myshopify.com/",
    "SHOPIFY_ACCESS_TOKEN": "shpat_0123456789abcdef0123",
}


def _resolver(creds=CREDS):
    return StaticCredentialResolver({SHOP_REF: creds})


class _Upstream:
    """Records requests and answers them from a route table."""

    def __init__(self, routes):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"errors": "Not Found"})
        status, body = self.routes[key]
        return httpx.Response(status, json=body)

    def patch_client(self, module: str, monkeypatch):
        monkeypatch.setattr(
            f"workflow_builder.plugins.shopify.steps.{module}.ShopifyClient",
            functools.partial(ShopifyClient, transport=httpx.MockTransport(self)),
        )


API = "/admin/api/2024-01"


# ---------------------------------------------------------------------------
# get-order
# ---------------------------------------------------------------------------


class TestGetOrder:
    @pytest.mark.asyncio
    async def test_maps_order(self, monkeypatch):
        upstream = _Upstream({
            ("GET", f"{API}/orders/1001.json"): (200, {"order": {
                "id": 1001,
                "order_number": 1,
                "name": "#1001",
                "email": "a@example.com",
                "total_price": "20.00",
                "currency": "USD",
                "financial_status": "paid",
                "fulfillment_status": None,
                "created_at": "2024-05-01T00:00:00Z",
                "line_items": [{"id": 1, "title": "Mug", "quantity": 2, "price": "10.00",
                                "sku": "MUG", "variant_id": 5, "product_id": 9}],
                "shipping_address": {"first_name": "Ada", "city": "London"},
                "customer": {"id": 3, "email": "a@example.com", "first_name": "Ada", "last_name": "L"},
            }}),
        })
        upstream.patch_client("get_order", monkeypatch)

        r = await get_order_step(
            {"orderId": "1001", "integrationId": SHOP_REF},
            resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert r.success is True, r.error
        assert r.data["name"] == "#1001"
        assert r.data["totalPrice"] == "20.00"
        assert r.data["lineItems"][0]["variantId"] == 5
        assert r.data["shippingAddress"]["firstName"] == "Ada"
        assert r.data["shippingAddress"]["zip"] is None
        assert r.data["customer"]["lastName"] == "L"

        request = upstream.requests[0]
        assert request.url.host == "acme.myshopify.com"
        assert request.headers["X-Shopify-Access-Token"] == CREDS["SHOPIFY_ACCESS_TOKEN"]

    @pytest.mark.asyncio
    async def test_absent_address_and_customer_are_none(self, monkeypatch):
        upstream = _Upstream({("GET", f"{API}/orders/7.json"): (200, {"order": {"id": 7}})})
        upstream.patch_client("get_order", monkeypatch)

        r = await get_order_step(
            {"orderId": "7", "integrationId": SHOP_REF}, resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert r.data["shippingAddress"] is None
        assert r.data["customer"] is None
        assert r.data["lineItems"] == []

    @pytest.mark.asyncio
    async def test_missing_domain_reported_first(self, monkeypatch):
        upstream = _Upstream({})
        upstream.patch_client("get_order", monkeypatch)

        r = await get_order_step(
            {"orderId": "1", "integrationId": SHOP_REF},
            resolver=_resolver({}), recorder=MemoryStepRecorder(),
        )
        assert r.to_dict() == {
            "success": False,
            "error": "SHOPIFY_STORE_DOMAIN is not configured. Please add it in Project Integrations.",
        }
        assert r.kind == FailureKind.MISSING_CREDENTIAL
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_missing_token(self, monkeypatch):
        upstream = _Upstream({})
        upstream.patch_client("get_order", monkeypatch)

        r = await get_order_step(
            {"orderId": "1", "integrationId": SHOP_REF},
            resolver=_resolver({"SHOPIFY_STORE_DOMAIN": "acme.myshopify.com"}),
            recorder=MemoryStepRecorder(),
        )
        assert r.error.startswith("SHOPIFY_ACCESS_TOKEN is not configured")
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_upstream_error_body(self, monkeypatch):
        upstream = _Upstream({("GET", f"{API}/orders/404.json"): (404, {"errors": "Not Found"})})
        upstream.patch_client("get_order", monkeypatch)

        r = await get_order_step(
            {"orderId": "404", "integrationId": SHOP_REF}, resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert r.to_dict() == {"success": False, "error": "Not Found"}
        assert r.kind == FailureKind.UPSTREAM_HTTP_ERROR

    @pytest.mark.asyncio
    async def test_structured_error_body_is_json_encoded(self, monkeypatch):
        upstream = _Upstream({
            ("GET", f"{API}/orders/5.json"): (422, {"errors": {"order": ["is invalid"]}}),
        })
        upstream.patch_client("get_order", monkeypatch)

        r = await get_order_step(
            {"orderId": "5", "integrationId": SHOP_REF}, resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert json.loads(r.error) == {"order": ["is invalid"]}

    @pytest.mark.asyncio
    async def test_unreachable_store_is_prefixed(self, monkeypatch):
        def handler(request):
            raise httpx.ConnectError("Name or service not known", request=request)

        monkeypatch.setattr(
            "workflow_builder.plugins.shopify.steps.get_order.ShopifyClient",
            functools.partial(ShopifyClient, transport=httpx.MockTransport(handler)),
        )
        r = await get_order_step(
            {"orderId": "1", "integrationId": SHOP_REF}, resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert r.error == "Failed to get order: Name or service not known"
        assert r.kind == FailureKind.UPSTREAM_UNREACHABLE


# ---------------------------------------------------------------------------
# list-orders
# ---------------------------------------------------------------------------


class TestListOrders:
    def test_build_query_defaults(self):
        assert build_query({}) == {"limit": "50"}

    def test_build_query_status_any_omitted(self):
        q = build_query({"status": "any", "financialStatus": "paid", "limit": "10"})
        assert q == {"financial_status": "paid", "limit": "10"}

    def test_build_query_status_kept(self):
        assert build_query({"status": "open"})["status"] == "open"

    @pytest.mark.asyncio
    async def test_summaries_and_count(self, monkeypatch):
        upstream = _Upstream({
            ("GET", f"{API}/orders.json"): (200, {"orders": [
                {"id": 1, "name": "#1", "updated_at": "u1",
                 "line_items": [{"quantity": 2}, {"quantity": 3}]},
                {"id": 2, "name": "#2", "line_items": []},
            ]}),
        })
        upstream.patch_client("list_orders", monkeypatch)

        r = await list_orders_step(
            {"integrationId": SHOP_REF, "status": "any"}, resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert r.success is True, r.error
        assert r.data["count"] == 2
        assert r.data["orders"][0]["itemCount"] == 5
        assert r.data["orders"][0]["updatedAt"] == "u1"
        assert r.data["orders"][1]["itemCount"] == 0
        assert "status" not in upstream.requests[0].url.params
        assert upstream.requests[0].url.params["limit"] == "50"


# ---------------------------------------------------------------------------
# create-product
# ---------------------------------------------------------------------------


class TestCreateProduct:
    @pytest.mark.asyncio
    async def test_title_required(self, monkeypatch):
        upstream = _Upstream({})
        upstream.patch_client("create_product", monkeypatch)

        r = await create_product_step(
            {"integrationId": SHOP_REF, "title": "  "}, resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert r.error == "Product title is required"
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_creates_with_variant(self, monkeypatch):
        upstream = _Upstream({
            ("POST", f"{API}/products.json"): (201, {"product": {
                "id": 99, "title": "Mug", "handle": "mug", "status": "active",
                "created_at": "c", "variants": [{"id": 1, "price": "9.99", "sku": "MUG-1",
                                                 "inventory_item_id": 555}],
            }}),
        })
        upstream.patch_client("create_product", monkeypatch)

        r = await create_product_step(
            {"integrationId": SHOP_REF, "title": "Mug", "price": "9.99", "sku": "MUG-1", "vendor": ""},
            resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert r.success is True, r.error
        assert r.data["id"] == 99
        assert r.data["variants"][0]["inventoryItemId"] == 555

        body = json.loads(upstream.requests[0].content)
        assert body == {"product": {"title": "Mug", "variants": [{"price": "9.99", "sku": "MUG-1"}]}}

    @pytest.mark.asyncio
    async def test_no_variant_without_price_or_sku(self, monkeypatch):
        upstream = _Upstream({("POST", f"{API}/products.json"): (201, {"product": {"id": 1}})})
        upstream.patch_client("create_product", monkeypatch)

        await create_product_step(
            {"integrationId": SHOP_REF, "title": "Plain"}, resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        body = json.loads(upstream.requests[0].content)
        assert "variants" not in body["product"]


# ---------------------------------------------------------------------------
# update-inventory
# ---------------------------------------------------------------------------


class TestUpdateInventory:
    @pytest.mark.asyncio
    async def test_invalid_adjustment_makes_no_calls(self, monkeypatch):
        upstream = _Upstream({})
        upstream.patch_client("update_inventory", monkeypatch)

        r = await update_inventory_step(
            {"integrationId": SHOP_REF, "inventoryItemId": "1", "locationId": "2", "adjustment": "abc"},
            resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert r.error == INVALID_ADJUSTMENT
        assert r.kind == FailureKind.INVALID_INPUT
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_level_not_found_skips_write(self, monkeypatch):
        upstream = _Upstream({
            ("GET", f"{API}/inventory_levels.json"): (200, {"inventory_levels": []}),
        })
        upstream.patch_client("update_inventory", monkeypatch)

        r = await update_inventory_step(
            {"integrationId": SHOP_REF, "inventoryItemId": "1", "locationId": "2", "adjustment": "5"},
            resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert r.error == LEVEL_NOT_FOUND
        assert [req.method for req in upstream.requests] == ["GET"]

    @pytest.mark.asyncio
    async def test_read_failure_without_body_is_prefixed(self, monkeypatch):
        def handler(request):
            return httpx.Response(503)

        monkeypatch.setattr(
            "workflow_builder.plugins.shopify.steps.update_inventory.ShopifyClient",
            functools.partial(ShopifyClient, transport=httpx.MockTransport(handler)),
        )
        r = await update_inventory_step(
            {"integrationId": SHOP_REF, "inventoryItemId": "1", "locationId": "2", "adjustment": -1},
            resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert r.error == "Failed to get current inventory: HTTP 503"

    @pytest.mark.asyncio
    async def test_adjusts_and_reports_previous_quantity(self, monkeypatch):
        upstream = _Upstream({
            ("GET", f"{API}/inventory_levels.json"): (200, {"inventory_levels": [
                {"inventory_item_id": 1, "location_id": 2, "available": 10},
            ]}),
            ("POST", f"{API}/inventory_levels/adjust.json"): (200, {"inventory_level": {
                "inventory_item_id": 1, "location_id": 2, "available": 5,
            }}),
        })
        upstream.patch_client("update_inventory", monkeypatch)

        r = await update_inventory_step(
            {"integrationId": SHOP_REF, "inventoryItemId": "1", "locationId": "2", "adjustment": "-5"},
            resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert r.to_dict() == {
            "success": True,
            "inventoryItemId": 1,
            "locationId": 2,
            "available": 5,
            "previousQuantity": 10,
        }
        read, write = upstream.requests
        assert read.url.params["inventory_item_ids"] == "1"
        assert read.url.params["location_ids"] == "2"
        assert json.loads(write.content) == {
            "location_id": 2,
            "inventory_item_id": 1,
            "available_adjustment": -5,
        }


class TestUpdateInventoryMalformedBodies:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            [{"inventory_item_id": 1}],
            {"inventory_levels": {"available": 3}},
            {"inventory_levels": ["not-an-object"]},
        ],
    )
    async def test_malformed_read_body_skips_write(self, monkeypatch, body):
        upstream = _Upstream({("GET", f"{API}/inventory_levels.json"): (200, body)})
        upstream.patch_client("update_inventory", monkeypatch)

        r = await update_inventory_step(
            {"integrationId": SHOP_REF, "inventoryItemId": "1", "locationId": "2", "adjustment": "3"},
            resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert r.error == "Unexpected response from Shopify: inventory_levels missing or malformed"
        assert r.kind == FailureKind.UPSTREAM_HTTP_ERROR
        assert [req.method for req in upstream.requests] == ["GET"]

    @pytest.mark.asyncio
    async def test_malformed_write_body(self, monkeypatch):
        upstream = _Upstream({
            ("GET", f"{API}/inventory_levels.json"): (200, {"inventory_levels": [{"available": 4}]}),
            ("POST", f"{API}/inventory_levels/adjust.json"): (200, ["unexpected"]),
        })
        upstream.patch_client("update_inventory", monkeypatch)

        r = await update_inventory_step(
            {"integrationId": SHOP_REF, "inventoryItemId": "1", "locationId": "2", "adjustment": "3"},
            resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert r.error == "Unexpected response from Shopify: inventory_level missing or malformed"

    @pytest.mark.asyncio
    async def test_get_order_without_order_object(self, monkeypatch):
        upstream = _Upstream({("GET", f"{API}/orders/1.json"): (200, {"orders": []})})
        upstream.patch_client("get_order", monkeypatch)

        r = await get_order_step(
            {"orderId": "1", "integrationId": SHOP_REF}, resolver=_resolver(), recorder=MemoryStepRecorder(),
        )
        assert r.error == "Unexpected response from Shopify: order missing or malformed"
