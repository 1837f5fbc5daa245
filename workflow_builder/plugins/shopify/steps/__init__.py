"""Shopify action steps."""

from workflow_builder.plugins.shopify.steps.create_product import create_product_step
from workflow_builder.plugins.shopify.steps.get_order import get_order_step
from workflow_builder.plugins.shopify.steps.list_orders import list_orders_step
from workflow_builder.plugins.shopify.steps.update_inventory import update_inventory_step

__all__ = [
    "create_product_step",
    "get_order_step",
    "list_orders_step",
    "update_inventory_step",
]
