"""List Shopify Orders: filtered order summaries."""

from __future__ import annotations

from typing import Any

from workflow_builder.plugins.shopify.client import (
    ShopifyClient,
    ShopifyCredentials,
    error_result,
    json_object,
    unexpected_response,
)
from workflow_builder.plugins.shopify.fields import ORDER_QUERY_FIELDS, ORDER_SUMMARY_FIELDS
from workflow_builder.steps.handler import StepResult, step
from workflow_builder.steps.registry import register_step
from workflow_builder.util.http import parse_int
from workflow_builder.util.mapping import build_payload, map_fields

DEFAULT_LIMIT = 50


def build_query(core: dict[str, Any]) -> dict[str, str]:
    """Shopify query params from step input. status "any" is the API default and is omitted."""
    params = {k: str(v) for k, v in build_payload(core, ORDER_QUERY_FIELDS).items()}
    if params.get("status") == "any":
        del params["status"]
    limit = parse_int(core.get("limit"))
    params["limit"] = str(limit) if limit else str(DEFAULT_LIMIT)
    return params


def summarize_order(order: dict[str, Any]) -> dict[str, Any]:
    summary = map_fields(order, ORDER_SUMMARY_FIELDS)
    summary["itemCount"] = sum(
        parse_int(item.get("quantity")) or 0
        for item in order.get("line_items") or []
        if isinstance(item, dict)
    )
    return summary


@register_step(label="List Orders")
@step("shopify/list-orders", integration="shopify", failure_prefix="Failed to list orders")
async def list_orders_step(core: dict[str, Any], credentials: dict[str, str]) -> StepResult:
    creds = ShopifyCredentials.from_credentials(credentials)
    if isinstance(creds, StepResult):
        return creds

    async with ShopifyClient(creds) as client:
        response = await client.get("/orders.json", params=build_query(core))
        if not response.is_success:
            return error_result(response)
        body = json_object(response)
        raw_orders = body.get("orders") if body is not None else None
        if not isinstance(raw_orders, list):
            return unexpected_response(response, "orders")

    orders = [summarize_order(o) for o in raw_orders if isinstance(o, dict)]
    return StepResult.ok(orders=orders, count=len(orders))
