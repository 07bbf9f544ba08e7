"""
Order file parser — turns tilde-delimited text into order groups.

Each non-empty line is one record; ``fields[0]`` is the record type.
A ``soheader`` opens an order, following ``sodetail`` lines belong to it
until the next header or end of input.  A group is only emitted when it
has at least one line item, and that rule applies to the final group too.
"""

from __future__ import annotations

import re
from typing import Any, Iterator

from ordersync.core.constants import FIELD_DELIMITER, RecordType
from ordersync.core.logging import get_logger
from ordersync.parsing.records import (
    DETAIL_FIELDS,
    DETAIL_NUMERIC_FIELDS,
    HEADER_FIELDS,
    HEADER_NUMERIC_FIELDS,
    OrderGroup,
    OrderHeader,
    OrderLineItem,
)
from ordersync.pipeline.errors import InvalidInputError

logger = get_logger(__name__)

# Leading decimal prefix, the way a lenient float parser reads "12.5kg".
_NUMBER_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


# ═══════════════════════════════════════════════════════════
#  Field helpers
# ═══════════════════════════════════════════════════════════

def format_date(value: str) -> str:
    """YYYYMMDD → DD/MM/YYYY; anything not 8 characters long is returned as-is."""
    if not value or len(value) != 8:
        return value
    return f"{value[6:8]}/{value[4:6]}/{value[0:4]}"


def parse_number(value: str | None) -> float:
    """Lenient numeric read: missing, blank or non-numeric values become 0."""
    if not value:
        return 0.0
    match = _NUMBER_PREFIX.match(value)
    if not match:
        return 0.0
    try:
        number = float(match.group(1))
    except ValueError:
        return 0.0
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return number


def _field(fields: list[str], index: int) -> str:
    return fields[index] if index < len(fields) else ""


def _map_fields(
    fields: list[str],
    layout: tuple[str, ...],
    numeric: frozenset[str],
) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for index, name in enumerate(layout):
        raw = _field(fields, index)
        values[name] = parse_number(raw) if name in numeric else raw
    return values


# ═══════════════════════════════════════════════════════════
#  Record parsers
# ═══════════════════════════════════════════════════════════

def parse_order_header(fields: list[str]) -> OrderHeader:
    """Build an OrderHeader from the split fields of a ``soheader`` line."""
    values = _map_fields(fields, HEADER_FIELDS, HEADER_NUMERIC_FIELDS)

    if len(values["due_date"]) == 8:
        values["due_date_formatted"] = format_date(values["due_date"])
    if len(values["order_date"]) == 8:
        values["order_date_formatted"] = format_date(values["order_date"])

    return OrderHeader(**values)


def parse_order_detail(fields: list[str]) -> OrderLineItem:
    """Build an OrderLineItem from the split fields of a ``sodetail`` line."""
    values = _map_fields(fields, DETAIL_FIELDS, DETAIL_NUMERIC_FIELDS)

    if len(values["line_due_date"]) == 8:
        values["line_due_date_formatted"] = format_date(values["line_due_date"])

    if not values["line_value"] and values["quantity_ordered"] and values["unit_price"]:
        values["calculated_line_value"] = values["quantity_ordered"] * values["unit_price"]

    return OrderLineItem(**values)


# ═══════════════════════════════════════════════════════════
#  File parser
# ═══════════════════════════════════════════════════════════

def _validate(text: Any) -> str:
    if not isinstance(text, str):
        raise InvalidInputError(
            f"Order file content must be text, got {type(text).__name__}",
            step_name="parse_records",
        )
    if not text:
        raise InvalidInputError(
            "Order file content is empty",
            step_name="parse_records",
        )
    return text


def iter_order_groups(text: str) -> Iterator[OrderGroup]:
    """
    Yield order groups lazily, in file order.

    Raises InvalidInputError up front for non-text or empty input.
    Detail lines before the first header and unknown record types are
    ignored.  Headers with no detail lines are dropped.
    """
    _validate(text)

    lines = [line.strip() for line in text.split("\n")]

    header: OrderHeader | None = None
    items: list[OrderLineItem] = []

    for line in lines:
        if not line:
            continue

        fields = line.split(FIELD_DELIMITER)
        record_type = fields[0]

        if record_type == RecordType.HEADER:
            if header is not None and items:
                yield OrderGroup(header=header, items=tuple(items))
            elif header is not None:
                logger.debug("Dropping header without items", order_id=header.order_id)
            header = parse_order_header(fields)
            items = []

        elif record_type == RecordType.DETAIL:
            if header is None:
                continue
            items.append(parse_order_detail(fields))

    if header is not None and items:
        yield OrderGroup(header=header, items=tuple(items))


def parse_order_file(text: str) -> list[OrderGroup]:
    """Eager form of :func:`iter_order_groups`."""
    return list(iter_order_groups(text))
