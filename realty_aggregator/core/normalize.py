from __future__ import annotations

import math
import unicodedata
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from realty_aggregator.core.models import Listing


def safe_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(" ", "").replace("\xa0", "")
        if not value:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def round_half_away(value: float) -> int:
    """
    Round to nearest integer, ties away from zero (Python's round() is banker's rounding).
    """
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def compute_price_per_meter(price: float | None, size: float | None) -> int | None:
    if price is None or size is None or size == 0:
        return None
    return round_half_away(price / size)


def normalize_location(location: Any) -> str:
    if not isinstance(location, str):
        return ""
    normalized = unicodedata.normalize("NFKD", location)
    ascii_text = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    return " ".join(ascii_text.casefold().split())


def listing_to_record(listing: "Listing") -> dict[str, Any]:
    return {
        "id": listing.id,
        "url": listing.url,
        "name": listing.name,
        "location": listing.location,
        "size": listing.size,
        "price": listing.price,
        "pricePerMeter": listing.price_per_meter,
        "images": list(listing.images),
        "timestamp": listing.timestamp.isoformat(),
        "source": listing.source.value,
        "backgroundColor": listing.group_tag,
        "duplicateCount": listing.duplicate_count,
    }
