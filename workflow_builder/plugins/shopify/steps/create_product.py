"""Create Shopify Product: one product, optionally with a priced / SKU'd variant."""

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
    PRODUCT_FIELDS,
    PRODUCT_INPUT_FIELDS,
    VARIANT_FIELDS,
    VARIANT_INPUT_FIELDS,
)
from workflow_builder.steps.handler import StepResult, step
from workflow_builder.steps.registry import register_step
from workflow_builder.util.mapping import build_payload, map_fields, map_list


def build_product_payload(core: dict[str, Any]) -> dict[str, Any]:
    product = build_payload(core, PRODUCT_INPUT_FIELDS)
    variant = build_payload(core, VARIANT_INPUT_FIELDS)
    if variant:
        product["variants"] = [variant]
    return {"product": product}


@register_step(label="Create Product")
@step("shopify/create-product", integration="shopify", failure_prefix="Failed to create product")
async def create_product_step(core: dict[str, Any], credentials: dict[str, str]) -> StepResult:
    creds = ShopifyCredentials.from_credentials(credentials)
    if isinstance(creds, StepResult):
        return creds

    if not str(core.get("title") or "").strip():
        return StepResult.invalid_input("Product title is required")

    async with ShopifyClient(creds) as client:
        response = await client.post("/products.json", build_product_payload(core))
        if not response.is_success:
            return error_result(response)
        body = json_object(response)
        product = body.get("product") if body is not None else None
        if not isinstance(product, dict):
            return unexpected_response(response, "product")

    result = map_fields(product, PRODUCT_FIELDS)
    result["variants"] = map_list(product.get("variants"), VARIANT_FIELDS)
    return StepResult.ok(result)
