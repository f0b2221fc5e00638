import asyncio
import json

import httpx
import pytest

from realty_aggregator.collectors.base import SourceFetchError
from realty_aggregator.collectors.bezrealitky.collector import BezrealitkyCollector, build_variables
from realty_aggregator.core.models import QueryParams


def test_build_variables_uses_defaults_and_region():
    variables = build_variables(QueryParams.from_mapping({"location": "ostrava", "priceTo": "7500000"}))
    assert variables["regionOsmIds"] == ["R436453"]
    assert variables["priceFrom"] == 5_000_000
    assert variables["priceTo"] == 7_500_000
    assert variables["surfaceFrom"] == 50
    assert variables["surfaceTo"] == 100


def test_fetch_listings_posts_graphql_and_normalizes():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "data": {
                    "listAdverts": {
                        "totalCount": 2,
                        "list": [
                            {
                                "id": "881",
                                "uri": "/nemovitosti-byty-domy/881-prodej-bytu",
                                "mainImage": {"url": "https://img.test/main.jpg"},
                                "publicImages": [{"url": "https://img.test/1.jpg"}],
                                "address": "Vinohradská, Praha 2",
                                "surface": 64,
                                "price": 8320000,
                            },
                            {"id": "882", "uri": "/x", "address": None, "surface": None, "price": 0},
                        ],
                    }
                }
            },
        )

    collector = BezrealitkyCollector(transport=httpx.MockTransport(handler))
    listings = asyncio.run(collector.fetch_listings(QueryParams.from_mapping({"sizeFrom": "60"})))

    assert captured["body"]["operationName"] == "AdvertList"
    assert captured["body"]["variables"]["surfaceFrom"] == 60
    assert [item.id for item in listings] == ["bezrealitky-881", "bezrealitky-882"]
    first, second = listings
    assert first.url == "https://www.bezrealitky.cz/nemovitosti-byty-domy/881-prodej-bytu"
    assert first.images == ("https://img.test/main.jpg", "https://img.test/1.jpg")
    assert first.price_per_meter == 130000
    assert second.location == "Location not specified"
    assert second.price is None and second.price_per_meter is None


def test_graphql_errors_raise():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json={"errors": [{"message": "Variable $locale missing"}]})
    )
    collector = BezrealitkyCollector(transport=transport)
    with pytest.raises(SourceFetchError, match="locale"):
        asyncio.run(collector.fetch_listings(QueryParams.from_mapping({})))


def test_empty_list_is_not_an_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"data": {"listAdverts": {"list": []}}}))
    collector = BezrealitkyCollector(transport=transport)
    assert asyncio.run(collector.fetch_listings(QueryParams.from_mapping({}))) == []
