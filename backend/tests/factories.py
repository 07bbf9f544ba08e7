"""
Builders for order-file text and an in-memory commerce API.

``FakeCommerceAPI`` answers the five endpoints the pipeline calls through
an ``httpx.MockTransport`` and records every request it sees.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx

from ordersync.core.constants import FIELD_DELIMITER
from ordersync.ingestion.dispatch import Dispatcher, Verdict
from ordersync.parsing.records import DETAIL_FIELDS, HEADER_FIELDS
from ordersync.submission.commerce_client import CommerceClient

BASE_URL = "https://commerce.test/v1"
API_KEY = "test-key"

HEADER_DEFAULTS = {
    "record_type": "soheader",
    "order_id": "ORD1",
    "customer_account": "ACC1",
    "discount_percentage": "0",
    "order_value": "0",
    "due_date": "20250101",
    "order_date": "20250101",
    "delivery_name": "Jane Doe",
    "delivery_address_line1": "1 Road",
    "delivery_address_line3": "Hoghton",
    "delivery_address_line4": "Preston  PR5 0RA",
    "delivery_address_line5": "UNITED KINGDOM",
    "customer_reference_number": "PO-1",
}

DETAIL_DEFAULTS = {
    "record_type": "sodetail",
    "product_code": "SKU1",
    "description": "Widget",
    "quantity_ordered": "2",
    "line_value": "20.00",
    "line_discount_percentage": "0",
    "unit_price": "10.00",
}


def header_line(**values: Any) -> str:
    fields = {**HEADER_DEFAULTS, **values}
    return FIELD_DELIMITER.join(str(fields.get(name, "")) for name in HEADER_FIELDS)


def detail_line(**values: Any) -> str:
    fields = {**DETAIL_DEFAULTS, **values}
    return FIELD_DELIMITER.join(str(fields.get(name, "")) for name in DETAIL_FIELDS)


def order_file(*lines: str, newline: str = "\n") -> str:
    return newline.join(lines) + newline


def two_order_file() -> str:
    return order_file(
        header_line(),
        detail_line(),
        header_line(order_id="ORD2", customer_account="ACC2", customer_reference_number="PO-2"),
        detail_line(product_code="SKU2", description="Gadget", quantity_ordered="1",
                    line_value="5.50", unit_price="5.50"),
    )


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout)


class FakeCommerceAPI:
    """Customers by barcode, products by SKU, orders by customer reference."""

    def __init__(self, products: dict[str, str] | None = None) -> None:
        self.customers: dict[str, str] = {}
        self.products: dict[str, str] = products if products is not None else {
            "SKU1": "prod-1",
            "SKU2": "prod-2",
        }
        self.existing_references: set[str] = set()

        self.created_customers: list[dict[str, Any]] = []
        self.product_lookups: list[list[str]] = []
        self.orders: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []

        self.create_customer_body: dict[str, Any] | None = None
        self.order_status = 201
        self.product_failures = 0

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self) -> CommerceClient:
        return CommerceClient(BASE_URL, API_KEY, transport=self.transport())

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        resource = request.url.path.rstrip("/").rsplit("/", 1)[-1]
        handler = getattr(self, f"_{request.method.lower()}_{resource}", None)
        if handler is None:
            return httpx.Response(404, json={"error": "not found"})
        return handler(request)

    # ─── Customers ─────────────────────────────────────

    def _get_customers(self, request: httpx.Request) -> httpx.Response:
        barcode = request.url.params.get("barcode", "")
        if barcode in self.customers:
            return httpx.Response(200, json={"data": [{"id": self.customers[barcode], "barcode": barcode}]})
        return httpx.Response(200, json={"data": []})

    def _post_customers(self, request: httpx.Request) -> httpx.Response:
        record = json.loads(request.content)
        self.created_customers.append(record)
        if self.create_customer_body is not None:
            return httpx.Response(201, json=self.create_customer_body)
        customer_id = f"cust-{len(self.created_customers)}"
        self.customers[record["barcode"]] = customer_id
        return httpx.Response(201, json={"id": customer_id})

    # ─── Catalog ───────────────────────────────────────

    def _get_products(self, request: httpx.Request) -> httpx.Response:
        if self.product_failures > 0:
            self.product_failures -= 1
            return httpx.Response(503, text="catalog unavailable")
        skus = request.url.params.get("sku", "").split(",")
        self.product_lookups.append(skus)
        rows = []
        for sku in skus:
            key = sku.strip().upper()
            if key in self.products:
                rows.append({"id": self.products[key], "sku": key})
        return httpx.Response(200, json=rows)

    # ─── Orders ────────────────────────────────────────

    def _get_orders(self, request: httpx.Request) -> httpx.Response:
        reference = request.url.params.get("customerReference", "")
        if reference in self.existing_references:
            return httpx.Response(200, json={"data": [{"id": "order-existing", "customerReference": reference}]})
        return httpx.Response(200, json={"data": []})

    def _post_orders(self, request: httpx.Request) -> httpx.Response:
        if self.order_status >= 400:
            return httpx.Response(self.order_status, json={"error": "rejected"})
        payload = json.loads(request.content)
        self.orders.append(payload)
        self.existing_references.add(payload.get("customerReference", ""))
        return httpx.Response(self.order_status, json={"id": f"order-{len(self.orders)}"})


ORDER_TEXT = "soheader~ORD1~ACC1\nsodetail~SKU1~Widget~2~20.00\n"


class StubDispatcher(Dispatcher):
    """Succeeds unless told otherwise per file; can hold a verdict back."""

    def __init__(self, outcomes: dict[str, Any] | None = None) -> None:
        self.outcomes = outcomes or {}
        self.calls: list[tuple[str, str]] = []
        self.entered = asyncio.Event()
        self.release: asyncio.Event | None = None

    async def dispatch(self, file_name: str, content: str, timeout: float) -> Verdict:
        self.calls.append((file_name, content))
        self.entered.set()
        if self.release is not None:
            await self.release.wait()
        outcome = self.outcomes.get(file_name, True)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome:
            return Verdict(file_name=file_name, success=True, result={"context_summary": {"orders_total": 1}})
        return Verdict.failure(file_name, "order rejected", "SubmissionFailed")
