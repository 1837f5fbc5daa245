"""Shopify integration. Importing this package registers its steps."""

from workflow_builder.plugins.shopify.client import (
    ACCESS_TOKEN_KEY,
    STORE_DOMAIN_KEY,
    ShopifyClient,
    ShopifyCredentials,
)
from workflow_builder.plugins.shopify.steps import (
    create_product_step,
    get_order_step,
    list_orders_step,
    update_inventory_step,
)

INTEGRATION_TYPE = "shopify"

__all__ = [
    "ACCESS_TOKEN_KEY",
    "INTEGRATION_TYPE",
    "STORE_DOMAIN_KEY",
    "ShopifyClient",
    "ShopifyCredentials",
    "create_product_step",
    "get_order_step",
    "list_orders_step",
    "update_inventory_step",
]
