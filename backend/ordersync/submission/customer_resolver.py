"""
Customer find-or-create against the commerce API.

Customers are keyed by the order's account code, stored as the customer
barcode.  A freshly created customer is not trusted until a settle delay
has passed, because the directory is eventually consistent.  No retries.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from ordersync.core.logging import get_logger
from ordersync.parsing.records import OrderHeader
from ordersync.pipeline.errors import (
    APIRequestError,
    CustomerCreationFailedError,
    NoCustomerIdError,
)
from ordersync.submission.address import address_block, name_block
from ordersync.submission.commerce_client import CommerceClient

logger = get_logger(__name__)

DEFAULT_SETTLE_DELAY_S = 5.0


def build_customer_record(header: OrderHeader) -> dict[str, Any]:
    return {
        "name": name_block(header),
        "address": address_block(header),
        "barcode": header.customer_account,
    }


def _customer_id(body: Any) -> str | None:
    """``id`` at the top level or under ``data``; None when the field is missing."""
    if not isinstance(body, dict):
        return None
    if "id" in body:
        return "" if body["id"] is None else str(body["id"]).strip()
    nested = body.get("data")
    if isinstance(nested, dict) and "id" in nested:
        return "" if nested["id"] is None else str(nested["id"]).strip()
    return None


class CustomerResolver:
    """
    Resolve an order header to a commerce customer id.

    Args:
        client: Commerce API client.
        settle_delay_s: Wait after a create before trusting the new id.
        sleep: Awaitable sleep, injectable so tests run without delay.
    """

    def __init__(
        self,
        client: CommerceClient,
        *,
        settle_delay_s: float = DEFAULT_SETTLE_DELAY_S,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._settle_delay_s = settle_delay_s
        self._sleep = sleep

    async def resolve(self, header: OrderHeader) -> str:
        account = header.customer_account
        log = logger.bind(order_id=header.order_id, customer_account=account)

        existing = await self._client.find_customer_by_barcode(account)
        existing_id = _customer_id(existing) if existing else None
        if existing_id:
            log.info("Existing customer found", customer_id=existing_id)
            return existing_id

        log.info("Customer not found, creating")
        try:
            response = await self._client.create_customer(build_customer_record(header))
        except APIRequestError as exc:
            raise CustomerCreationFailedError(
                f"Customer creation failed for account '{account}': {exc}",
                status_code=exc.status_code,
                response_body=exc.response_body,
                details={"order_id": header.order_id},
            ) from exc

        customer_id = _customer_id(response.data)
        if customer_id is None:
            raise CustomerCreationFailedError(
                f"Customer creation for account '{account}' returned no id "
                f"(HTTP {response.status_code})",
                status_code=response.status_code,
                details={"order_id": header.order_id},
            )

        if self._settle_delay_s > 0:
            log.debug("Waiting for new customer to settle", delay_s=self._settle_delay_s)
            await self._sleep(self._settle_delay_s)

        if not customer_id:
            raise NoCustomerIdError(
                f"No customer id available for account '{account}'",
                status_code=response.status_code,
                details={"order_id": header.order_id},
            )

        log.info("Customer created", customer_id=customer_id)
        return customer_id
