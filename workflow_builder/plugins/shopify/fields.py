"""Shopify field translation tables (step result name -> Shopify field)."""

from __future__ import annotations

ORDER_FIELDS: dict[str, str] = {
    "id": "id",
    "orderNumber": "order_number",
    "name": "name",
    "email": "email",
    "totalPrice": "total_price",
    "currency": "currency",
    "financialStatus": "financial_status",
    "fulfillmentStatus": "fulfillment_status",
    "createdAt": "created_at",
}

ORDER_SUMMARY_FIELDS: dict[str, str] = {
    **ORDER_FIELDS,
    "updatedAt": "updated_at",
}

LINE_ITEM_FIELDS: dict[str, str] = {
    "id": "id",
    "title": "title",
    "quantity": "quantity",
    "price": "price",
    "sku": "sku",
    "variantId": "variant_id",
    "productId": "product_id",
}

ADDRESS_FIELDS: dict[str, str] = {
    "firstName": "first_name",
    "lastName": "last_name",
    "address1": "address1",
    "address2": "address2",
    "city": "city",
    "province": "province",
    "country": "country",
    "zip": "zip",
    "phone": "phone",
}

CUSTOMER_FIELDS: dict[str, str] = {
    "id": "id",
    "email": "email",
    "firstName": "first_name",
    "lastName": "last_name",
}

PRODUCT_FIELDS: dict[str, str] = {
    "id": "id",
    "title": "title",
    "handle": "handle",
    "status": "status",
    "createdAt": "created_at",
}

VARIANT_FIELDS: dict[str, str] = {
    "id": "id",
    "title": "title",
    "price": "price",
    "sku": "sku",
    "inventoryItemId": "inventory_item_id",
}

INVENTORY_LEVEL_FIELDS: dict[str, str] = {
    "inventoryItemId": "inventory_item_id",
    "locationId": "location_id",
    "available": "available",
}

# Request direction: step input name -> Shopify field
PRODUCT_INPUT_FIELDS: dict[str, str] = {
    "title": "title",
    "bodyHtml": "body_html",
    "vendor": "vendor",
    "productType": "product_type",
    "tags": "tags",
    "status": "status",
}

VARIANT_INPUT_FIELDS: dict[str, str] = {
    "price": "price",
    "sku": "sku",
}

ORDER_QUERY_FIELDS: dict[str, str] = {
    "status": "status",
    "financialStatus": "financial_status",
    "fulfillmentStatus": "fulfillment_status",
    "createdAtMin": "created_at_min",
    "createdAtMax": "created_at_max",
}
