"""
HTTP client for the commerce API.

Wraps an ``httpx.AsyncClient`` with the bearer key, the expected-status
check and JSON decoding.  The typed helpers (customer search/create,
product lookup, order search/create) are the only calls the pipeline
makes.

Usage::

    async with CommerceClient(base_url, api_key) as client:
        exists = await client.order_exists("PO-1234")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import httpx

from ordersync.core.constants import APIRequestMethod
from ordersync.core.credentials import CommerceCredentials
from ordersync.core.logging import get_logger
from ordersync.pipeline.errors import APIRequestError, SubmissionFailedError

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_EXPECTED_STATUS = (200, 201, 202, 204)

# ── Endpoint paths (relative to base_url) ──────────
CUSTOMERS_PATH = "/customers"
PRODUCTS_PATH = "/products"
ORDERS_PATH = "/orders"


@dataclass
class ApiResponse:
    """Decoded response: HTTP status plus JSON body (``{}`` when empty)."""

    status_code: int
    data: Any


def _records(data: Any) -> list[dict[str, Any]]:
    """List endpoints answer either ``[...]`` or ``{"data": [...]}``."""
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    if isinstance(data, dict):
        rows = data.get("data")
        if isinstance(rows, list):
            return [row for row in rows if isinstance(row, dict)]
    return []


class CommerceClient:
    """Authenticated calls to the commerce API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
        )

    @classmethod
    def from_credentials(
        cls,
        credentials: CommerceCredentials,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> CommerceClient:
        return cls(
            credentials.base_url,
            credentials.api_key,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> CommerceClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ─── Generic request ───────────────────────────────

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        expected_status: Sequence[int] = DEFAULT_EXPECTED_STATUS,
    ) -> ApiResponse:
        """
        Send one request and decode the JSON body.

        Raises APIRequestError on transport failure, an unexpected status
        code, or a body that is not JSON.
        """
        method = method.upper()
        logger.debug("Commerce API request", method=method, path=path, has_body=json is not None)

        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            raise APIRequestError(
                f"{method} {path} failed: {exc.__class__.__name__}: {exc}",
            ) from exc

        if response.status_code not in expected_status:
            raise APIRequestError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                response_body=response.text[:1000],
            )

        if not response.content:
            return ApiResponse(status_code=response.status_code, data={})

        try:
            data = response.json()
        except ValueError as exc:
            raise APIRequestError(
                f"{method} {path} returned a non-JSON body",
                status_code=response.status_code,
                response_body=response.text[:1000],
            ) from exc

        return ApiResponse(status_code=response.status_code, data=data)

    # ─── Customers ─────────────────────────────────────

    async def find_customer_by_barcode(self, barcode: str) -> dict[str, Any] | None:
        """First customer whose account barcode matches, or None."""
        response = await self.request(
            APIRequestMethod.GET,
            CUSTOMERS_PATH,
            params={"barcode": barcode},
        )
        matches = _records(response.data)
        return matches[0] if matches else None

    async def create_customer(self, record: dict[str, Any]) -> ApiResponse:
        return await self.request(APIRequestMethod.POST, CUSTOMERS_PATH, json=record)

    # ─── Catalog ───────────────────────────────────────

    async def lookup_products(self, skus: Sequence[str]) -> list[dict[str, Any]]:
        """Catalog rows for a batch of product codes (missing codes are absent)."""
        if not skus:
            return []
        response = await self.request(
            APIRequestMethod.GET,
            PRODUCTS_PATH,
            params={"sku": ",".join(skus)},
        )
        return _records(response.data)

    # ─── Orders ────────────────────────────────────────

    async def order_exists(self, customer_reference: str) -> bool:
        response = await self.request(
            APIRequestMethod.GET,
            ORDERS_PATH,
            params={"customerReference": customer_reference},
        )
        return bool(_records(response.data))

    async def create_order(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Submit one order.  Any rejection surfaces as SubmissionFailedError."""
        try:
            response = await self.request(APIRequestMethod.POST, ORDERS_PATH, json=payload)
        except APIRequestError as exc:
            raise SubmissionFailedError(
                f"Order {payload.get('sourceReferenceId', '?')} rejected: {exc}",
                status_code=exc.status_code,
                response_body=exc.response_body,
            ) from exc
        return response.data if isinstance(response.data, dict) else {"data": response.data}
