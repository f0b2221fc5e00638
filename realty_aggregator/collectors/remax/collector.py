from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import urlencode, urljoin

import httpx

from realty_aggregator.collectors.base import Collector, check_status
from realty_aggregator.collectors.markup import (
    element_html,
    max_page_number,
    parse_price,
    parse_size,
    split_blocks,
    strip_tags,
    tag_attribute,
)
from realty_aggregator.core.models import Listing, QueryParams, SourceTag


LOGGER = logging.getLogger(__name__)

SEARCH_URL = "https://www.remax-czech.cz/reality/vyhledavani/"
SITE_URL = "https://www.remax-czech.cz"
MAX_PAGES = 10
# Only Prague has a known region id; other cities fall back to it.
REGION_IDS = {"praha": 19}
FLAT_TYPES = ("3", "4", "5", "10", "11")  # 2+kk, 2+1, 3+kk, 3+1, 4+kk


class RemaxCollector(Collector):
    source_name = SourceTag.REMAX

    def __init__(self, max_pages: int = MAX_PAGES, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.max_pages = max_pages

    async def fetch(self, client: httpx.AsyncClient, params: QueryParams) -> list[dict[str, Any]]:
        if params.location not in REGION_IDS:
            LOGGER.warning("Remax: no region id for location=%s, searching praha", params.location)
        items: list[dict[str, Any]] = []
        page = 1
        while page <= self.max_pages:
            self._progress(f"fetching page {page}")
            response = await client.get(build_search_url(params, page))
            check_status(response, self.source_name)
            page_html = response.text
            page_items = extract_items(page_html)
            if not page_items:
                LOGGER.info("Remax: no listings found on page %s", page)
                self._progress(f"no listings on page {page}")
                break
            items.extend(page_items)
            self._progress(f"found {len(page_items)} listings on page {page}")
            if page >= max_page_number(page_html, "page-link"):
                self._progress("no more pages")
                break
            page += 1
        else:
            self._progress("page limit reached")
        return items

    def normalize(self, raw_item: dict[str, Any]) -> Listing | None:
        url = raw_item.get("url")
        if not url:
            return None
        return Listing(
            id=f"remax-{url.rstrip('/').rsplit('/', 1)[-1]}",
            url=url,
            source=self.source_name,
            name=raw_item.get("title") or "",
            location=clean_location(raw_item.get("location")),
            size=parse_size(raw_item.get("title")),
            price=parse_price(raw_item.get("price_text")),
            images=tuple(raw_item.get("images") or ()),
            timestamp=self.fetch_timestamp(),
        )


def build_search_url(params: QueryParams, page: int = 1) -> str:
    query: dict[str, str] = {
        "area_from": params.size_from or "50",
        "area_to": params.size_to or "100",
        "hledani": "2",  # sale
        "price_from": params.price_from or "8000000",
        "price_to": params.price_to or "10000000",
        f"regions[{REGION_IDS.get(params.location, REGION_IDS['praha'])}]": "on",
    }
    for flat_type in FLAT_TYPES:
        query[f"types[4][{flat_type}]"] = "on"
    if page > 1:
        query["stranka"] = str(page)
    return f"{SEARCH_URL}?{urlencode(query)}"


def extract_items(page_html: str) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    for block in split_blocks(page_html, "pl-items__item"):
        price_html = element_html(block, "pl-items__item-price")
        title_match = re.search(r"<h2\b[^>]*>(.*?)</h2>", block, flags=re.IGNORECASE | re.DOTALL)
        info_html = element_html(block, "pl-items__item-info")
        href = tag_attribute(block, "a", "href", css_class="pl-items__link")
        images = [
            src
            for src in re.findall(r'<img\b[^>]*?\s(?:data-src|src)="([^"]+)"', block, flags=re.IGNORECASE)
            if src and not src.startswith("data:")
        ]
        items.append(
            {
                "url": urljoin(SITE_URL, href) if href else None,
                "title": strip_tags(title_match.group(1)) if title_match else "",
                "location": strip_tags(info_html) if info_html else "",
                "price_text": strip_tags(price_html) if price_html else None,
                "images": images,
            }
        )
    return items


def clean_location(location: str | None) -> str:
    return re.sub(r"\s+", " ", (location or "").replace("ulice", "")).strip()
