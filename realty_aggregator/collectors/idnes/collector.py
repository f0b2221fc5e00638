from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, urljoin

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

BASE_URL = "https://reality.idnes.cz/s/byty"
SITE_URL = "https://reality.idnes.cz"
MAX_PAGES = 3
ROOM_TYPES = ("2k", "21", "3k", "31")  # 2+kk, 2+1, 3+kk, 3+1
LOCATION_SLUGS = {"praha": "praha", "brno": "brno", "ostrava": "ostrava"}


class IdnesCollector(Collector):
    source_name = SourceTag.IDNES

    def __init__(self, max_pages: int = MAX_PAGES, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.max_pages = max_pages

    async def fetch(self, client: httpx.AsyncClient, params: QueryParams) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page = 1
        while page <= self.max_pages:
            self._progress(f"fetching page {page}")
            response = await client.get(build_search_url(params, page))
            check_status(response, self.source_name)
            page_html = response.text
            page_items = extract_items(page_html)
            if not page_items:
                LOGGER.info("iDNES: no listings found on page %s", page)
                self._progress(f"no listings on page {page}")
                break
            items.extend(page_items)
            self._progress(f"found {len(page_items)} listings on page {page}")
            if page >= max_page_number(page_html, "paging__item"):
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
            id=f"idnes-{url.rstrip('/').rsplit('/', 1)[-1]}",
            url=url,
            source=self.source_name,
            name=raw_item.get("title") or "",
            location=raw_item.get("location") or "",
            size=parse_size(raw_item.get("title")),
            price=parse_price(raw_item.get("price_text")),
            images=tuple(raw_item.get("images") or ()),
            timestamp=self.fetch_timestamp(),
        )


def build_search_url(params: QueryParams, page: int = 1) -> str:
    path_parts: list[str] = []
    if params.price_from and params.price_to:
        path_parts.append(f"cena-nad-{params.price_from}-do-{params.price_to}")
    path_parts.append(LOCATION_SLUGS.get(params.location, "praha"))

    query_parts = [f"s-qc[subtypeFlat][{index}]={quote(room)}" for index, room in enumerate(ROOM_TYPES)]
    if params.size_from:
        query_parts.append(f"s-qc[usableAreaMin]={quote(params.size_from)}")
    if params.size_to:
        query_parts.append(f"s-qc[usableAreaMax]={quote(params.size_to)}")
    if params.price_from and not params.price_to:
        query_parts.append(f"s-qc[priceMin]={quote(params.price_from)}")
    if params.price_to and not params.price_from:
        query_parts.append(f"s-qc[priceMax]={quote(params.price_to)}")
    if page > 1:
        query_parts.append(f"page={page}")

    return f"{BASE_URL}/{'/'.join(path_parts)}/?{'&'.join(query_parts)}"


def extract_items(page_html: str) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    for block in split_blocks(page_html, "c-products__item"):
        price_html = element_html(block, "c-products__price")
        title_html = element_html(block, "c-products__title")
        info_html = element_html(block, "c-products__info")
        href = tag_attribute(block, "a", "href", css_class="c-products__link")
        image = tag_attribute(block, "img", "src") or tag_attribute(block, "img", "data-src")
        items.append(
            {
                "url": urljoin(SITE_URL, href) if href else None,
                "title": strip_tags(title_html) if title_html else "",
                "location": strip_tags(info_html) if info_html else "",
                "price_text": strip_tags(price_html) if price_html else None,
                "images": [image] if image else [],
            }
        )
    return items
