from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

import httpx

from realty_aggregator.core.models import Listing, QueryParams, SourceTag
from realty_aggregator.core.progress import INFO, ProgressReporter, safe_report


LOGGER = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class SourceFetchError(RuntimeError):
    """Raised by a collector when its source cannot be queried."""


class Collector(ABC):
    source_name: SourceTag
    default_headers: dict[str, str] = {}

    def __init__(
        self,
        timeout_seconds: float = 20.0,
        max_attempts: int = 1,
        retry_wait_seconds: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
        reporter: ProgressReporter | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max(1, max_attempts)
        self.retry_wait_seconds = retry_wait_seconds
        self.transport = transport
        self.reporter = reporter

    @abstractmethod
    async def fetch(self, client: httpx.AsyncClient, params: QueryParams) -> list[dict[str, Any]]:
        """Fetch raw items from source."""

    @abstractmethod
    def normalize(self, raw_item: dict[str, Any]) -> Listing | None:
        """Normalize source item into canonical listing."""

    def fetch_timestamp(self) -> datetime:
        return datetime.now(timezone.utc)

    async def fetch_listings(self, params: QueryParams) -> list[Listing]:
        headers = {"User-Agent": USER_AGENT, **self.default_headers}
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            follow_redirects=True,
            headers=headers,
            transport=self.transport,
        ) as client:
            raw_items = await self._fetch_with_retry(client, params)

        listings: list[Listing] = []
        skipped = 0
        for item in raw_items:
            normalized = self.normalize(item)
            if normalized is None:
                skipped += 1
                continue
            listings.append(normalized)
        LOGGER.info(
            "Source=%s fetched=%s normalized=%s skipped=%s",
            self.source_name.value,
            len(raw_items),
            len(listings),
            skipped,
        )
        self._progress(f"completed fetch, total listings: {len(listings)}")
        return listings

    def _progress(self, message: str, level: str = INFO) -> None:
        safe_report(self.reporter, f"{self.source_name.value}: {message}", level)

    async def _fetch_with_retry(self, client: httpx.AsyncClient, params: QueryParams) -> list[dict[str, Any]]:
        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = await self.fetch(client, params)
                return result if isinstance(result, list) else []
            except (httpx.HTTPError, SourceFetchError) as exc:
                last_error = exc
                if attempt >= self.max_attempts:
                    break
                wait_seconds = attempt * self.retry_wait_seconds
                LOGGER.warning(
                    "Collector retry source=%s attempt=%s/%s wait=%ss error=%s",
                    self.source_name.value,
                    attempt,
                    self.max_attempts,
                    wait_seconds,
                    exc,
                )
                await asyncio.sleep(wait_seconds)
        if last_error:
            raise SourceFetchError(str(last_error) or type(last_error).__name__) from last_error
        return []


def safe_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def check_status(response: httpx.Response, source: SourceTag) -> None:
    if response.status_code >= 400:
        raise SourceFetchError(f"{source.value} search returned HTTP {response.status_code}")
