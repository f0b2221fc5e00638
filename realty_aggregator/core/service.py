from __future__ import annotations

import logging
from typing import Any, Sequence

from realty_aggregator.core.cache import SnapshotCache
from realty_aggregator.core.dedupe import process_listings
from realty_aggregator.core.models import ALL_SOURCES, Listing, QueryParams, SourceTag
from realty_aggregator.core.normalize import listing_to_record
from realty_aggregator.core.orchestrator import FetchOrchestrator
from realty_aggregator.core.progress import ERROR, ProgressReporter, safe_report


LOGGER = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to fetch listings"


class SearchFailedError(RuntimeError):
    def __init__(self, message: str = GENERIC_FAILURE_MESSAGE) -> None:
        super().__init__(message)


def sort_by_price_per_meter(listings: Sequence[Listing]) -> list[Listing]:
    """Ascending price per m², missing values last. Stable, so duplicate groups stay together on ties."""
    return sorted(
        listings,
        key=lambda listing: (listing.price_per_meter is None, listing.price_per_meter or 0),
    )


def build_stats(listings: Sequence[Listing], sources: Sequence[SourceTag] = ALL_SOURCES) -> dict[str, int]:
    stats = {"total": len(listings)}
    for tag in sources:
        stats[tag.value] = sum(1 for listing in listings if listing.source == tag)
    return stats


class SearchService:
    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        cache: SnapshotCache,
        reporter: ProgressReporter | None = None,
        sources: Sequence[SourceTag] = ALL_SOURCES,
    ) -> None:
        self.orchestrator = orchestrator
        self.cache = cache
        self.reporter = reporter
        self.sources = tuple(sources)

    async def search(self, params: QueryParams) -> dict[str, Any]:
        try:
            return await self._search(params)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Search pipeline failed: %s", exc)
            safe_report(self.reporter, f"Search failed: {GENERIC_FAILURE_MESSAGE}", ERROR)
            raise SearchFailedError() from exc

    async def _search(self, params: QueryParams) -> dict[str, Any]:
        source_outcomes: dict[str, int | str] | None = None
        if await self.cache.should_refresh(params):
            sources = params.sources or self.sources
            safe_report(self.reporter, f"Starting property search for sources: {', '.join(t.value for t in sources)}")
            fetched = await self.orchestrator.fetch(sources, params)
            processed = process_listings(fetched.listings, self.reporter)
            snapshot = await self.cache.write(processed)
            source_outcomes = fetched.describe_outcomes()
        else:
            snapshot = await self.cache.read()
            if snapshot is None:
                raise RuntimeError("Snapshot cache reported fresh data but holds no snapshot")
            LOGGER.info("Serving cached snapshot produced_at=%s", snapshot.produced_at.isoformat())

        listings = sort_by_price_per_meter(snapshot.listings)
        response: dict[str, Any] = {
            "listings": [listing_to_record(listing) for listing in listings],
            "timestamp": snapshot.produced_at.isoformat(),
            "count": len(listings),
            "stats": build_stats(listings, self.sources),
            "searchParams": dict(params.raw),
            "cached": source_outcomes is None,
        }
        if source_outcomes is not None:
            response["sources"] = source_outcomes
        return response
