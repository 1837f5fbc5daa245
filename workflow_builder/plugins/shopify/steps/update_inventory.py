"""Update Shopify Inventory: adjust the available quantity at one location.

Two sequential calls: read the current level (for ``previousQuantity``), then
post the relative adjustment. Nothing guards the gap between the two; a
concurrent change in Shopify between read and write only makes
``previousQuantity`` stale, it is not reported as an error. A failure after
the read leaves nothing to undo.
"""

from __future__ import annotations

from typing import Any

from workflow_builder.plugins.shopify.client import (
    ShopifyClient,
    ShopifyCredentials,
    error_result,
    json_object,
    unexpected_response,
)
from workflow_builder.plugins.shopify.fields import INVENTORY_LEVEL_FIELDS
from workflow_builder.steps.handler import StepResult, step
from workflow_builder.steps.registry import register_step
from workflow_builder.util.http import parse_int
from workflow_builder.util.mapping import map_fields

INVALID_ADJUSTMENT = "Adjustment must be a valid integer (e.g., 10 or -5)"
LEVEL_NOT_FOUND = (
    "Inventory level not found for the specified item and location. "
    "Make sure the inventory item is stocked at this location."
)


@register_step(label="Update Inventory")
@step("shopify/update-inventory", integration="shopify", failure_prefix="Failed to update inventory")
async def update_inventory_step(core: dict[str, Any], credentials: dict[str, str]) -> StepResult:
    creds = ShopifyCredentials.from_credentials(credentials)
    if isinstance(creds, StepResult):
        return creds

    adjustment = parse_int(core.get("adjustment"))
    if adjustment is None:
        return StepResult.invalid_input(INVALID_ADJUSTMENT)

    item_id = str(core.get("inventoryItemId") or "").strip()
    location_id = str(core.get("locationId") or "").strip()

    async with ShopifyClient(creds) as client:
        read = await client.get(
            "/inventory_levels.json",
            params={"inventory_item_ids": item_id, "location_ids": location_id},
        )
        if not read.is_success:
            return error_result(read, fallback_prefix="Failed to get current inventory")

        body = json_object(read)
        levels = body.get("inventory_levels") if body is not None else None
        if not isinstance(levels, list):
            return unexpected_response(read, "inventory_levels")
        if not levels:
            return StepResult.fail(LEVEL_NOT_FOUND)
        if not isinstance(levels[0], dict):
            return unexpected_response(read, "inventory_levels")
        previous_quantity = levels[0].get("available")

        write = await client.post(
            "/inventory_levels/adjust.json",
            {
                "location_id": parse_int(location_id),
                "inventory_item_id": parse_int(item_id),
                "available_adjustment": adjustment,
            },
        )
        if not write.is_success:
            return error_result(write)
        body = json_object(write)
        level = body.get("inventory_level") if body is not None else None
        if not isinstance(level, dict):
            return unexpected_response(write, "inventory_level")

    return StepResult.ok(map_fields(level, INVENTORY_LEVEL_FIELDS), previousQuantity=previous_quantity)
