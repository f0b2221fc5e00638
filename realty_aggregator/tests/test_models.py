import pytest

from realty_aggregator.core.models import InvalidQueryError, QueryParams, SourceTag
from realty_aggregator.core.normalize import (
    compute_price_per_meter,
    listing_to_record,
    normalize_location,
    round_half_away,
    safe_float,
)


def test_price_per_meter_recomputed_from_price_and_size(make_listing):
    listing = make_listing("a", price="4 500 000", size="75", price_per_meter=1)
    assert listing.price == 4500000.0
    assert listing.size == 75.0
    assert listing.price_per_meter == 60000


def test_price_per_meter_absent_without_both_inputs(make_listing):
    assert make_listing("a", price=1000000).price_per_meter is None
    assert make_listing("b", size=50).price_per_meter is None
    assert make_listing("c", price=1000000, size=0).price_per_meter is None


def test_round_half_away_from_zero():
    assert round_half_away(0.5) == 1
    assert round_half_away(2.5) == 3
    assert round_half_away(-2.5) == -3
    assert round_half_away(2.4999) == 2
    assert compute_price_per_meter(101, 2) == 51


def test_round_half_away_below_half_rounds_down():
    # Largest double below 0.5; adding 0.5 to it rounds up to 1.0 in float arithmetic.
    assert round_half_away(0.49999999999999994) == 0
    assert round_half_away(-0.49999999999999994) == 0
    assert round_half_away(4999999999999.499) == 4999999999999


def test_safe_float_rejects_garbage():
    assert safe_float("12,5") is None
    assert safe_float("nan") is None
    assert safe_float(True) is None
    assert safe_float(" 1 200 ") == 1200.0


def test_normalize_location():
    assert normalize_location("  Plzeň -   Bory ") == "plzen - bory"
    assert normalize_location(None) == ""


def test_listing_record_uses_response_field_names(make_listing):
    record = listing_to_record(make_listing("x", SourceTag.REMAX, price=3000000, size=60, location="Praha"))
    assert record["source"] == "remax"
    assert record["pricePerMeter"] == 50000
    assert record["duplicateCount"] is None
    assert record["backgroundColor"] is None
    assert record["timestamp"] == "2026-01-15T12:00:00+00:00"


def test_query_params_defaults():
    params = QueryParams.from_mapping(None, default_location="brno")
    assert params.location == "brno"
    assert params.sources == ()
    assert params.provided is False


def test_query_params_parses_sources_in_caller_order():
    params = QueryParams.from_mapping({"sources": "remax, sreality,remax", "priceTo": "9000000"})
    assert params.sources == (SourceTag.REMAX, SourceTag.SREALITY)
    assert params.price_to == "9000000"
    assert params.provided is True


@pytest.mark.parametrize(
    "raw",
    [
        {"location": "plzen"},
        {"sizeFrom": "large"},
        {"sources": "sreality,zillow"},
    ],
)
def test_query_params_rejects_invalid_input(raw):
    with pytest.raises(InvalidQueryError):
        QueryParams.from_mapping(raw)


def test_query_params_rejects_disabled_source():
    with pytest.raises(InvalidQueryError, match="not enabled"):
        QueryParams.from_mapping({"sources": "idnes"}, available_sources=(SourceTag.SREALITY,))
