"""
Record types for the tilde-delimited order file.

One ``OrderHeader`` per ``soheader`` line, one ``OrderLineItem`` per
``sodetail`` line.  Field order below is the wire order: index 0 is the
record type, index N is the Nth tilde-separated value.  Positional
indexing stays inside this module and the parser.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# ═══════════════════════════════════════════════════════════
#  Wire layouts
# ═══════════════════════════════════════════════════════════

HEADER_FIELDS: tuple[str, ...] = (
    "record_type",
    "order_id",
    "customer_account",
    "sales_rep_code",
    "discount_percentage",
    "order_value",
    "due_date",
    "order_date",
    "season_code",
    "status_code",
    "delivery_name",
    "delivery_address_line1",
    "delivery_address_line2",
    "delivery_address_line3",
    "delivery_address_line4",
    "delivery_address_line5",
    "delivery_address_number",
    "customer_reference_number",
    "generic_code1",
    "freetype1",
    "freetype2",
    "freetype3",
    "disused",
    "order_type",
    "price_list",
    "note_date",
    "generic_code18",
    "generic_code19",
    "generic_code20",
    "generic_code21",
    "generic_code22",
    "generic_code23",
    "freetype4",
    "freetype5",
    "manual_address",
    "order_time_stamp",
    "price_code",
    "template_id",
    "post_order_discount",
    "signature_name",
    "signature_time_stamp",
    "location_code",
    "terms_code",
    "confirmation_email",
    "promotion_code",
    "weight",
    "volume",
    "despatch_advice",
    "despatch_type",
)

HEADER_NUMERIC_FIELDS = frozenset({
    "discount_percentage",
    "order_value",
    "post_order_discount",
})

DETAIL_FIELDS: tuple[str, ...] = (
    "record_type",
    "product_code",
    "description",
    "quantity_ordered",
    "line_value",
    "line_discount_percentage",
    "generic_code2",
    "freetype1",
    "unit_price",
    "price_discount_source",
    "line_due_date",
    "location_code",
    "post_order_discount",
    "unit_code",
    "ratio",
    "price_adjustment_code",
    "generic_code25",
    "generic_code26",
    "freetype2",
    "nett_price",
    "template_id",
    "buy_promo_id",
    "get_promo_id",
)

DETAIL_NUMERIC_FIELDS = frozenset({
    "quantity_ordered",
    "line_value",
    "line_discount_percentage",
    "unit_price",
})


# ═══════════════════════════════════════════════════════════
#  OrderHeader
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class OrderHeader:
    """
    Summary of one order block.

    ``order_id`` and ``customer_reference_number`` are the natural keys
    used for dedup against the commerce API.  ``*_formatted`` dates are
    only set when the raw value is exactly 8 characters (YYYYMMDD).
    """

    record_type: str = ""
    order_id: str = ""
    customer_account: str = ""
    sales_rep_code: str = ""
    discount_percentage: float = 0.0
    order_value: float = 0.0
    due_date: str = ""
    order_date: str = ""
    season_code: str = ""
    status_code: str = ""
    delivery_name: str = ""
    delivery_address_line1: str = ""
    delivery_address_line2: str = ""
    delivery_address_line3: str = ""
    delivery_address_line4: str = ""
    delivery_address_line5: str = ""
    delivery_address_number: str = ""
    customer_reference_number: str = ""
    generic_code1: str = ""
    freetype1: str = ""
    freetype2: str = ""
    freetype3: str = ""
    disused: str = ""
    order_type: str = ""
    price_list: str = ""
    note_date: str = ""
    generic_code18: str = ""
    generic_code19: str = ""
    generic_code20: str = ""
    generic_code21: str = ""
    generic_code22: str = ""
    generic_code23: str = ""
    freetype4: str = ""
    freetype5: str = ""
    manual_address: str = ""
    order_time_stamp: str = ""
    price_code: str = ""
    template_id: str = ""
    post_order_discount: float = 0.0
    signature_name: str = ""
    signature_time_stamp: str = ""
    location_code: str = ""
    terms_code: str = ""
    confirmation_email: str = ""
    promotion_code: str = ""
    weight: str = ""
    volume: str = ""
    despatch_advice: str = ""
    despatch_type: str = ""
    due_date_formatted: str | None = None
    order_date_formatted: str | None = None

    @property
    def trailing_address_lines(self) -> tuple[str, str, str]:
        """Address lines 3–5, where town and postcode usually live."""
        return (
            self.delivery_address_line3,
            self.delivery_address_line4,
            self.delivery_address_line5,
        )

    def to_dict(self) -> dict[str, Any]:
        return _as_dict(self)


# ═══════════════════════════════════════════════════════════
#  OrderLineItem
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class OrderLineItem:
    """
    One product line of an order.

    ``calculated_line_value`` is quantity × unit price, only present when
    the file gave no line value but did give both of those.
    """

    record_type: str = ""
    product_code: str = ""
    description: str = ""
    quantity_ordered: float = 0.0
    line_value: float = 0.0
    line_discount_percentage: float = 0.0
    generic_code2: str = ""
    freetype1: str = ""
    unit_price: float = 0.0
    price_discount_source: str = ""
    line_due_date: str = ""
    location_code: str = ""
    post_order_discount: str = ""
    unit_code: str = ""
    ratio: str = ""
    price_adjustment_code: str = ""
    generic_code25: str = ""
    generic_code26: str = ""
    freetype2: str = ""
    nett_price: str = ""
    template_id: str = ""
    buy_promo_id: str = ""
    get_promo_id: str = ""
    line_due_date_formatted: str | None = None
    calculated_line_value: float | None = None

    @property
    def effective_line_value(self) -> float:
        """Line value from the file, else the derived one, else 0."""
        if self.line_value:
            return self.line_value
        if self.calculated_line_value is not None:
            return self.calculated_line_value
        return 0.0

    def summary(self) -> dict[str, Any]:
        """Short form used in skipped-item metadata."""
        return {
            "productCode": self.product_code,
            "description": self.description,
            "quantityOrdered": self.quantity_ordered,
            "lineValue": self.effective_line_value,
        }

    def to_dict(self) -> dict[str, Any]:
        return _as_dict(self)


# ═══════════════════════════════════════════════════════════
#  OrderGroup
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class OrderGroup:
    """A header plus its line items, in file order."""

    header: OrderHeader
    items: tuple[OrderLineItem, ...] = field(default_factory=tuple)

    @property
    def order_id(self) -> str:
        return self.header.order_id

    @property
    def product_codes(self) -> list[str]:
        return [item.product_code for item in self.items]


def _as_dict(record: Any) -> dict[str, Any]:
    return {name: getattr(record, name) for name in record.__dataclass_fields__}
