from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from realty_aggregator.collectors.base import Collector, check_status, safe_int
from realty_aggregator.core.models import Listing, QueryParams, SourceTag


LOGGER = logging.getLogger(__name__)

SEARCH_URL = "https://www.sreality.cz/api/cs/v2/estates"
DETAIL_BASE_URL = "https://www.sreality.cz/detail/prodej/byt"
PER_PAGE = 100
MAX_PAGES = 10
REGION_IDS = {"praha": 10, "brno": 2, "ostrava": 8}
SIZE_ITEM_NAMES = {"Užitná plocha", "Podlahová plocha", "Plocha podlahová"}


class SrealityCollector(Collector):
    source_name = SourceTag.SREALITY
    default_headers = {"Accept": "application/json"}

    def __init__(self, max_pages: int = MAX_PAGES, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.max_pages = max_pages

    async def fetch(self, client: httpx.AsyncClient, params: QueryParams) -> list[dict[str, Any]]:
        search_params = build_search_params(params)
        LOGGER.debug("Sreality search params: %s", search_params)
        items: list[dict[str, Any]] = []
        page = 1
        while page <= self.max_pages:
            self._progress(f"fetching page {page}")
            response = await client.get(SEARCH_URL, params={**search_params, "page": page})
            check_status(response, self.source_name)
            payload = response.json()
            estates = ((payload or {}).get("_embedded") or {}).get("estates")
            if not estates:
                self._progress(f"no listings on page {page}")
                break
            items.extend(estate for estate in estates if isinstance(estate, dict))
            self._progress(f"found {len(estates)} listings on page {page}")
            total = safe_int(payload.get("total")) or 0
            if page * PER_PAGE >= total:
                break
            page += 1
        else:
            self._progress("page limit reached")
        return items

    def normalize(self, raw_item: dict[str, Any]) -> Listing | None:
        hash_id = raw_item.get("hash_id")
        if hash_id is None:
            return None
        name = str(raw_item.get("name") or "")
        price_info = raw_item.get("price_czk") if isinstance(raw_item.get("price_czk"), dict) else {}
        links = raw_item.get("_links") if isinstance(raw_item.get("_links"), dict) else {}
        images = [img.get("href") for img in links.get("images") or [] if isinstance(img, dict) and img.get("href")]
        return Listing(
            id=f"sreality-{hash_id}",
            url=build_detail_url(raw_item),
            source=self.source_name,
            name=name,
            location=str(raw_item.get("locality") or ""),
            size=extract_size(raw_item),
            price=price_info.get("value_raw"),
            images=tuple(images),
            timestamp=self.fetch_timestamp(),
        )


def build_search_params(params: QueryParams) -> dict[str, Any]:
    search_params: dict[str, Any] = {
        "category_main_cb": 1,  # flat
        "category_type_cb": 1,  # sale
        "category_sub_cb": "2|3",  # 2+kk/2+1, 3+kk/3+1
        "per_page": PER_PAGE,
        "locality_region_id": REGION_IDS.get(params.location, REGION_IDS["praha"]),
    }
    optional = {
        "usable_area_from": params.size_from,
        "usable_area_to": params.size_to,
        "price_from": params.price_from,
        "price_to": params.price_to,
    }
    search_params.update({key: value for key, value in optional.items() if value})
    return search_params


def extract_size(estate: dict[str, Any]) -> float | None:
    size = estate.get("usable_area")
    if size:
        return size
    for item in estate.get("items") or []:
        if not isinstance(item, dict) or item.get("name") not in SIZE_ITEM_NAMES:
            continue
        match = re.search(r"(\d+)", str(item.get("value") or ""))
        if match:
            return float(match.group(1))
        break
    match = re.search(r"(\d+)\s*m²", str(estate.get("name") or ""))
    if match:
        return float(match.group(1))
    return None


def build_detail_url(estate: dict[str, Any]) -> str:
    layout_match = re.search(r"\d\+\d|\d\+kk", str(estate.get("name") or ""), flags=re.IGNORECASE)
    layout = layout_match.group(0).lower() if layout_match else ""
    district = re.sub(r"\s+", "-", str(estate.get("locality_district") or "").lower())
    return f"{DETAIL_BASE_URL}/{layout}/{district}/{estate.get('hash_id')}"
