from __future__ import annotations

import logging
from typing import Any

import httpx

from realty_aggregator.collectors.base import Collector, SourceFetchError, check_status
from realty_aggregator.core.models import Listing, QueryParams, SourceTag
from realty_aggregator.core.normalize import safe_float


LOGGER = logging.getLogger(__name__)

GRAPHQL_URL = "https://api.bezrealitky.cz/graphql/"
SITE_URL = "https://www.bezrealitky.cz"
PAGE_LIMIT = 100
REGION_OSM_IDS = {"praha": "R435514", "brno": "R442169", "ostrava": "R436453"}
DEFAULT_PRICE_FROM = 5_000_000
DEFAULT_PRICE_TO = 10_000_000
DEFAULT_SURFACE_FROM = 50
DEFAULT_SURFACE_TO = 100

ADVERT_LIST_QUERY = """
query AdvertList($locale: Locale!, $estateType: [EstateType], $offerType: [OfferType], $ownership: [Ownership],
  $priceFrom: Int, $priceTo: Int, $surfaceFrom: Int, $surfaceTo: Int, $regionOsmIds: [ID],
  $limit: Int = 15, $offset: Int = 0, $order: ResultOrder = TIMEORDER_DESC, $currency: Currency) {
  listAdverts(
    offerType: $offerType
    estateType: $estateType
    ownership: $ownership
    priceFrom: $priceFrom
    priceTo: $priceTo
    surfaceFrom: $surfaceFrom
    surfaceTo: $surfaceTo
    regionOsmIds: $regionOsmIds
    limit: $limit
    offset: $offset
    order: $order
    currency: $currency
  ) {
    list {
      id
      uri
      mainImage { url(filter: RECORD_MAIN) }
      publicImages(limit: 10) { url(filter: RECORD_MAIN) }
      address(locale: $locale)
      surface
      price
      currency
    }
    totalCount
  }
}
"""


class BezrealitkyCollector(Collector):
    source_name = SourceTag.BEZREALITKY
    default_headers = {
        "Accept": "application/json",
        "Accept-Language": "cs",
        "Origin": SITE_URL,
        "Referer": f"{SITE_URL}/",
    }

    async def fetch(self, client: httpx.AsyncClient, params: QueryParams) -> list[dict[str, Any]]:
        self._progress("sending search request")
        response = await client.post(
            GRAPHQL_URL,
            json={
                "operationName": "AdvertList",
                "variables": build_variables(params),
                "query": ADVERT_LIST_QUERY,
            },
        )
        check_status(response, self.source_name)
        payload = response.json() or {}
        if payload.get("errors"):
            first = payload["errors"][0]
            message = first.get("message") if isinstance(first, dict) else str(first)
            raise SourceFetchError(f"bezrealitky GraphQL error: {message}")
        adverts = ((payload.get("data") or {}).get("listAdverts") or {}).get("list")
        if not adverts:
            LOGGER.info("Bezrealitky returned no adverts")
            self._progress("no listings found")
            return []
        self._progress(f"received {len(adverts)} listings")
        return [advert for advert in adverts if isinstance(advert, dict)]

    def normalize(self, raw_item: dict[str, Any]) -> Listing | None:
        advert_id = raw_item.get("id")
        if advert_id is None:
            return None
        images: list[str] = []
        main_image = raw_item.get("mainImage")
        if isinstance(main_image, dict) and main_image.get("url"):
            images.append(main_image["url"])
        for image in raw_item.get("publicImages") or []:
            if isinstance(image, dict) and image.get("url"):
                images.append(image["url"])
        address = raw_item.get("address") or ""
        return Listing(
            id=f"bezrealitky-{advert_id}",
            url=f"{SITE_URL}{raw_item.get('uri') or ''}",
            source=self.source_name,
            name=address or "Untitled Listing",
            location=address or "Location not specified",
            size=raw_item.get("surface") or None,
            price=raw_item.get("price") or None,
            images=tuple(images),
            timestamp=self.fetch_timestamp(),
        )


def build_variables(params: QueryParams) -> dict[str, Any]:
    return {
        "limit": PAGE_LIMIT,
        "offset": 0,
        "order": "TIMEORDER_DESC",
        "locale": "CS",
        "offerType": ["PRODEJ"],
        "estateType": ["BYT"],
        "ownership": ["OSOBNI"],
        "priceFrom": _int_or(params.price_from, DEFAULT_PRICE_FROM),
        "priceTo": _int_or(params.price_to, DEFAULT_PRICE_TO),
        "surfaceFrom": _int_or(params.size_from, DEFAULT_SURFACE_FROM),
        "surfaceTo": _int_or(params.size_to, DEFAULT_SURFACE_TO),
        "regionOsmIds": [REGION_OSM_IDS.get(params.location, REGION_OSM_IDS["praha"])],
        "location": "exact",
        "currency": "CZK",
    }


def _int_or(value: str | None, default: int) -> int:
    parsed = safe_float(value)
    return int(parsed) if parsed else default
