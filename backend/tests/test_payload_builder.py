"""
Tests for commerce order payload construction.

Tests cover rounding, per-line display prices, skipped items metadata,
and the wire body sent to the API.
"""

import math
from datetime import datetime, timezone

import pytest

from ordersync.parsing.parser import parse_order_file, parse_order_header
from ordersync.pipeline.errors import NoResolvableItemsError
from ordersync.submission.payload_builder import (
    build_line,
    build_order,
    order_created_at,
    round4,
    submission_body,
)
from tests.factories import detail_line, header_line, order_file


def _item(**values):
    return parse_order_file(order_file(header_line(), detail_line(**values)))[0].items[0]


class TestRound4:
    """Tests for 4-decimal rounding."""

    def test_half_rounds_away_from_zero(self):
        assert round4(0.00005) == 0.0001
        assert round4(-0.00005) == -0.0001

    def test_truncates_to_four_places(self):
        assert round4(1 / 3) == 0.3333
        assert round4(2 / 3) == 0.6667

    def test_no_negative_zero(self):
        result = round4(-0.00001)

        assert result == 0.0
        assert math.copysign(1, result) == 1.0

    @pytest.mark.parametrize("value", [10.0, 0.1235, -2.5001, 1234.5678, 0.0001, 19.9999, -0.3333])
    def test_rounded_values_are_stable(self, value):
        assert round4(value) == value
        assert round4(round4(value)) == round4(value)

    @pytest.mark.parametrize("value", [1 / 3, 2 / 3, 7.123456, -0.00005])
    def test_rounding_twice_changes_nothing(self, value):
        assert round4(round4(value)) == round4(value)


class TestBuildLine:
    """Tests for one payload item line."""

    def test_undiscounted_line(self):
        line = build_line(_item(), "prod-1")

        assert line["productId"] == "prod-1"
        assert line["sku"] == "SKU1"
        assert line["name"] == "Widget"
        assert line["quantity"] == 2
        assert line["displayPrice"] == 10.0
        assert line["displayDiscount"] == 0
        assert line["displayLineDiscount"] == 0
        assert line["displayLinePrice"] == 20.0
        assert line["displayLineTotal"] == 20.0
        assert line["displayTax"] == 0
        assert line["displayLineTax"] == 0
        assert line["fulfilmentType"] == "delivery"

    def test_discounted_line(self):
        line = build_line(_item(line_value="18.00"), "prod-1")

        assert line["displayPrice"] == 9.0
        assert line["displayDiscount"] == 1.0
        assert line["displayLineDiscount"] == 2.0
        assert line["displayLineTotal"] == 18.0

    def test_calculated_line_value_used(self):
        line = build_line(_item(quantity_ordered="3", line_value="", unit_price="2.5"), "prod-1")

        assert line["displayLinePrice"] == 7.5
        assert line["displayPrice"] == 2.5

    def test_zero_quantity_uses_unit_price(self):
        line = build_line(_item(quantity_ordered="0", line_value="0", unit_price="5"), "prod-1")

        assert line["displayPrice"] == 5.0
        assert line["displayDiscount"] == 0
        assert line["displayLineDiscount"] == 0


class TestBuildOrder:
    """Tests for the full order payload."""

    def _group(self, *details):
        return parse_order_file(order_file(header_line(), *details))[0]

    def test_order_fields(self):
        payload = build_order(
            self._group(detail_line()),
            {"SKU1": "prod-1"},
            "cust-1",
            source_id="source-1",
        )

        assert payload["createdAt"] == "2025-01-01T00:00:00+00:00"
        assert payload["currency"] == "GBP"
        assert payload["stage"] == "order"
        assert payload["sourceType"] == "other"
        assert payload["sourceReferenceId"] == "ORD1"
        assert payload["sourceId"] == "source-1"
        assert payload["customerReference"] == "PO-1"
        assert payload["customer"] == {"customerId": "cust-1"}
        assert payload["shipping"]["option"] == "historicOrder"
        assert payload["shipping"]["cost"] == 0
        assert payload["shipping"]["name"] == {"forename": "Jane Doe", "surname": "ACC1"}
        assert payload["shipping"]["address"]["city"] == "Hoghton"
        assert payload["shipping"]["address"]["postcode"] == "PR5 0RA"
        assert len(payload["items"]) == 1
        assert payload["_metadata"] == {"missingSkus": [], "skippedItemsCount": 0, "skippedItems": []}

    def test_sku_lookup_case_insensitive(self):
        payload = build_order(
            self._group(detail_line(product_code=" sku1 ")),
            {"SKU1": "prod-1"},
            "cust-1",
            source_id="source-1",
        )

        assert payload["items"][0]["productId"] == "prod-1"

    def test_unresolved_items_skipped(self):
        payload = build_order(
            self._group(detail_line(), detail_line(product_code="GONE", description="Old")),
            {"SKU1": "prod-1"},
            "cust-1",
            source_id="source-1",
            currency="EUR",
        )

        assert payload["currency"] == "EUR"
        assert [line["sku"] for line in payload["items"]] == ["SKU1"]
        assert payload["_metadata"]["missingSkus"] == ["GONE"]
        assert payload["_metadata"]["skippedItemsCount"] == 1
        assert payload["_metadata"]["skippedItems"][0]["productCode"] == "GONE"
        assert payload["_metadata"]["skippedItems"][0]["lineValue"] == 20.0

    def test_no_resolvable_items(self):
        group = self._group(detail_line(product_code="GONE"), detail_line(product_code="LOST"))

        with pytest.raises(NoResolvableItemsError) as exc_info:
            build_order(group, {}, "cust-1", source_id="source-1")

        assert exc_info.value.code == "NoResolvableItems"
        assert exc_info.value.missing_skus == ["GONE", "LOST"]

    def test_submission_body_strips_metadata(self):
        payload = build_order(self._group(detail_line()), {"SKU1": "prod-1"}, "cust-1", source_id="s")

        body = submission_body(payload)

        assert "_metadata" not in body
        assert "_metadata" in payload
        assert body["items"] == payload["items"]


class TestCreatedAt:
    def test_unusable_order_date_falls_back_to_now(self):
        header = parse_order_header(header_line(order_date="").split("~"))

        created = datetime.fromisoformat(order_created_at(header))

        assert created.tzinfo is not None
        assert abs((datetime.now(timezone.utc) - created).total_seconds()) < 60
