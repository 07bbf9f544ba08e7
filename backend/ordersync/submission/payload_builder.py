"""Build the commerce order payload from a parsed order group."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any

from ordersync.core.constants import (
    FULFILMENT_TYPE_DELIVERY,
    ORDER_SOURCE_TYPE,
    ORDER_STAGE,
    SHIPPING_OPTION,
)
from ordersync.parsing.records import OrderGroup, OrderHeader, OrderLineItem
from ordersync.pipeline.errors import NoResolvableItemsError
from ordersync.submission.address import address_block, name_block
from ordersync.submission.catalog import lookup_sku

METADATA_KEY = "_metadata"


def round4(value: float) -> float:
    """Round to 4 decimal places, halves away from zero."""
    scaled = math.floor(abs(value) * 10000 + 0.5) / 10000
    if scaled == 0:
        return 0.0
    return math.copysign(scaled, value)


def order_created_at(header: OrderHeader) -> str:
    """Order date (YYYYMMDD) as an ISO timestamp; now when the date is unusable."""
    try:
        created = datetime.strptime(header.order_date, "%Y%m%d").replace(tzinfo=timezone.utc)
    except ValueError:
        created = datetime.now(timezone.utc)
    return created.isoformat()


def build_line(item: OrderLineItem, product_id: str) -> dict[str, Any]:
    quantity = item.quantity_ordered
    line_value = item.effective_line_value
    unit_price = item.unit_price

    # zero quantity: no per-unit price can be derived, fall back to list price
    display_price = line_value / quantity if quantity else unit_price

    return {
        "productId": product_id,
        "sku": item.product_code,
        "name": item.description,
        "quantity": quantity,
        "displayPrice": round4(display_price),
        "displayDiscount": round4(unit_price - display_price),
        "displayLineDiscount": round4(unit_price * quantity - line_value),
        "displayLinePrice": round4(line_value),
        "displayLineTotal": round4(line_value),
        "displayTax": 0,
        "displayLineTax": 0,
        "fulfilmentType": FULFILMENT_TYPE_DELIVERY,
    }


def build_order(
    group: OrderGroup,
    sku_map: dict[str, str],
    customer_id: str,
    *,
    source_id: str,
    currency: str = "GBP",
) -> dict[str, Any]:
    """
    Transform one order group into the commerce order payload.

    Items whose product code is not in ``sku_map`` are left out and
    reported under ``_metadata``.  Raises NoResolvableItemsError when
    nothing resolves.
    """
    header = group.header
    lines: list[dict[str, Any]] = []
    skipped: list[OrderLineItem] = []

    for item in group.items:
        product_id = lookup_sku(sku_map, item.product_code)
        if product_id is None:
            skipped.append(item)
        else:
            lines.append(build_line(item, product_id))

    missing_skus = list(dict.fromkeys(item.product_code for item in skipped))

    if not lines:
        raise NoResolvableItemsError(
            f"Order {header.order_id}: none of {len(group.items)} item(s) resolved to a catalog product",
            missing_skus=missing_skus,
            step_name="build_orders",
            details={"order_id": header.order_id},
        )

    address = address_block(header)

    return {
        "createdAt": order_created_at(header),
        "currency": currency,
        "stage": ORDER_STAGE,
        "sourceType": ORDER_SOURCE_TYPE,
        "sourceReferenceId": header.order_id,
        "sourceId": source_id,
        "customerReference": header.customer_reference_number,
        "shipping": {
            "name": name_block(header),
            "address": address,
            "option": SHIPPING_OPTION,
            "cost": 0,
            "tax": 0,
        },
        "customer": {
            "customerId": customer_id,
        },
        "items": lines,
        METADATA_KEY: {
            "missingSkus": missing_skus,
            "skippedItemsCount": len(skipped),
            "skippedItems": [item.summary() for item in skipped],
        },
    }


def submission_body(payload: dict[str, Any]) -> dict[str, Any]:
    """Payload as sent over the wire: local metadata stripped."""
    return {key: value for key, value in payload.items() if key != METADATA_KEY}
