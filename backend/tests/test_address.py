"""Tests for town/postcode extraction from delivery address lines."""

import pytest

from ordersync.parsing.parser import parse_order_header
from ordersync.submission.address import (
    ExtractedAddress,
    address_block,
    extract_address,
    name_block,
)
from tests.factories import header_line


class TestExtractAddress:
    """Tests for picking city and postcode out of lines 3-5."""

    def test_postcode_line_after_town(self):
        result = extract_address(["Hoghton", "Preston  PR5 0RA", "UNITED KINGDOM"])

        assert result == ExtractedAddress(city="Hoghton", postcode="PR5 0RA")

    def test_county_and_postcode_on_one_line(self):
        result = extract_address(["Test City", "Test County PR5 0RA", "UNITED KINGDOM"])

        assert result.city == "Test City"
        assert result.postcode == "PR5 0RA"

    def test_first_line_with_postcode_uses_leading_text(self):
        result = extract_address(["Preston PR5 0RA", "UNITED KINGDOM", ""])

        assert result == ExtractedAddress(city="Preston", postcode="PR5 0RA")

    def test_blank_lines_skipped(self):
        result = extract_address(["", "Leeds", "LS1 4AP"])

        assert result == ExtractedAddress(city="Leeds", postcode="LS1 4AP")

    def test_two_lines_postcode_not_at_end(self):
        result = extract_address(["Leeds", "LS1 4AP West Yorkshire", None])

        assert result == ExtractedAddress(city="Leeds", postcode="LS1 4AP")

    def test_postcode_mid_line_among_three(self):
        result = extract_address(["Hoghton", "Preston PR5 0RA Lancs", "UNITED KINGDOM"])

        assert result == ExtractedAddress(city="Hoghton", postcode="PR5 0RA")

    def test_first_line_postcode_mid_line(self):
        result = extract_address(["Preston PR5 0RA Lancs", "UNITED KINGDOM"])

        assert result == ExtractedAddress(city="Preston", postcode="PR5 0RA")

    def test_no_postcode_first_non_country_line(self):
        result = extract_address(["UNITED KINGDOM", "Leeds", "Yorkshire"])

        assert result == ExtractedAddress(city="Leeds", postcode="")

    def test_only_country(self):
        assert extract_address(["UNITED KINGDOM", "", ""]) == ExtractedAddress()

    @pytest.mark.parametrize("postcode", ["M1 1AE", "B33 8TH", "CR2 6XH", "DN55 1PT", "W1A 0AX", "EC1A 1BB"])
    def test_postcode_shapes(self, postcode):
        assert extract_address(["Town", f"County {postcode}"]).postcode == postcode

    def test_lowercase_postcode(self):
        assert extract_address(["Hoghton", "preston pr5 0ra"]).postcode == "pr5 0ra"


class TestAddressBlocks:
    """Tests for the commerce name/address objects."""

    def test_address_block(self):
        header = parse_order_header(header_line(delivery_address_line2="Flat 2").split("~"))

        assert address_block(header) == {
            "line1": "1 Road",
            "line2": "Flat 2",
            "city": "Hoghton",
            "country": "GB",
            "postcode": "PR5 0RA",
            "region": "",
        }

    def test_name_block(self):
        header = parse_order_header(header_line().split("~"))

        assert name_block(header) == {"forename": "Jane Doe", "surname": "ACC1"}
