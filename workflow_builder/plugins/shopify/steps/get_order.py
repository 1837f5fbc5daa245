"""Get Shopify Order: fetch one order with line items, shipping address and customer."""

from __future__ import annotations

from typing import Any

from workflow_builder.plugins.shopify.client import (
    ShopifyClient,
    ShopifyCredentials,
    error_result,
    json_object,
    unexpected_response,
)
from workflow_builder.plugins.shopify.fields import (
    ADDRESS_FIELDS,
    CUSTOMER_FIELDS,
    LINE_ITEM_FIELDS,
    ORDER_FIELDS,
)
from workflow_builder.steps.handler import StepResult, step
from workflow_builder.steps.registry import register_step
from workflow_builder.util.mapping import map_fields, map_list, map_optional


def map_order(order: dict[str, Any]) -> dict[str, Any]:
    result = map_fields(order, ORDER_FIELDS)
    result["lineItems"] = map_list(order.get("line_items"), LINE_ITEM_FIELDS)
    result["shippingAddress"] = map_optional(order.get("shipping_address"), ADDRESS_FIELDS)
    result["customer"] = map_optional(order.get("customer"), CUSTOMER_FIELDS)
    return result


@register_step(label="Get Order")
@step("shopify/get-order", integration="shopify", failure_prefix="Failed to get order")
async def get_order_step(core: dict[str, Any], credentials: dict[str, str]) -> StepResult:
    creds = ShopifyCredentials.from_credentials(credentials)
    if isinstance(creds, StepResult):
        return creds

    order_id = str(core.get("orderId") or "").strip()
    if not order_id:
        return StepResult.invalid_input("Order ID is required")

    async with ShopifyClient(creds) as client:
        response = await client.get(f"/orders/{order_id}.json")
        if not response.is_success:
            return error_result(response)
        body = json_object(response)
        order = body.get("order") if body is not None else None
        if not isinstance(order, dict):
            return unexpected_response(response, "order")

    return StepResult.ok(map_order(order))
