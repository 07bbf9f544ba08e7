"""
Town/postcode extraction from the free-text delivery address lines.

The order file carries five unlabelled address lines.  Lines 1–2 are
street lines and go through verbatim; the town and postcode are
somewhere in lines 3–5, usually "<town>" then "<county/town> <postcode>"
then "UNITED KINGDOM".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from ordersync.core.constants import DEFAULT_COUNTRY, UNITED_KINGDOM_LINE
from ordersync.parsing.records import OrderHeader

UK_POSTCODE = re.compile(r"[A-Z]{1,2}\d{1,2}[A-Z]?\s*\d[A-Z]{2}", re.IGNORECASE)


@dataclass(frozen=True)
class ExtractedAddress:
    city: str = ""
    postcode: str = ""


def extract_address(lines: Iterable[str | None]) -> ExtractedAddress:
    """
    Pick city and postcode out of the trailing address lines.

    1. The first line holding a postcode anywhere supplies it.  The
       city is the line before it, or the text in front of the postcode
       when it is the first line.
    2. Otherwise the first line that is not "UNITED KINGDOM" is the city
       and the postcode is empty.
    """
    candidates = [line.strip() for line in lines if line and line.strip()]

    for index, line in enumerate(candidates):
        match = UK_POSTCODE.search(line)
        if not match:
            continue
        postcode = match.group(0)
        if index > 0:
            city = candidates[index - 1]
        else:
            city = line[: match.start()].strip()
        return ExtractedAddress(city=city, postcode=postcode)

    for line in candidates:
        if line.upper() != UNITED_KINGDOM_LINE:
            return ExtractedAddress(city=line, postcode="")

    return ExtractedAddress()


def address_block(header: OrderHeader) -> dict[str, str]:
    """Commerce ``address`` object for shipping and customer records."""
    extracted = extract_address(header.trailing_address_lines)
    return {
        "line1": header.delivery_address_line1,
        "line2": header.delivery_address_line2,
        "city": extracted.city,
        "country": DEFAULT_COUNTRY,
        "postcode": extracted.postcode,
        "region": "",
    }


def name_block(header: OrderHeader) -> dict[str, str]:
    """Commerce ``name`` object: delivery name as forename, account as surname."""
    return {
        "forename": header.delivery_name,
        "surname": header.customer_account,
    }
