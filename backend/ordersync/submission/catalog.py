"""SKU → catalog id reconciliation, in fixed-size lookup batches."""

from __future__ import annotations

from typing import Iterable

from ordersync.core.logging import get_logger
from ordersync.submission.commerce_client import CommerceClient

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 200


def normalise_sku(code: str | None) -> str:
    """Catalog keys compare trimmed and case-insensitive."""
    return (code or "").strip().upper()


def distinct_skus(codes: Iterable[str | None]) -> list[str]:
    """Trimmed product codes, first spelling wins, blanks dropped, order kept."""
    seen: dict[str, str] = {}
    for code in codes:
        key = normalise_sku(code)
        if key and key not in seen:
            seen[key] = (code or "").strip()
    return list(seen.values())


async def resolve_skus(
    client: CommerceClient,
    codes: Iterable[str | None],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> dict[str, str]:
    """
    Look up product codes and return ``{normalised_sku: catalog_id}``.

    Codes the catalog does not know are simply absent from the mapping.
    Lookup failures propagate as APIRequestError.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    wanted = distinct_skus(codes)
    mapping: dict[str, str] = {}

    for start in range(0, len(wanted), batch_size):
        batch = wanted[start:start + batch_size]
        products = await client.lookup_products(batch)
        for product in products:
            sku = normalise_sku(str(product.get("sku") or ""))
            product_id = product.get("id")
            if sku and product_id not in (None, ""):
                mapping[sku] = str(product_id)

        logger.debug(
            "SKU batch resolved",
            batch_start=start,
            batch_size=len(batch),
            resolved_total=len(mapping),
        )

    return mapping


def lookup_sku(mapping: dict[str, str], code: str | None) -> str | None:
    return mapping.get(normalise_sku(code))
