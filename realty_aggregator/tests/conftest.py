from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

import pytest

from realty_aggregator.core.models import Listing, QueryParams, SourceTag
from realty_aggregator.core.progress import ProgressReporter


FIXED_TIME = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class RecordingReporter(ProgressReporter):
    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    def report(self, message: str, level: str = "info") -> None:
        self.events.append((message, level))


class FakeCollector:
    """Stands in for a source collector: returns canned listings or raises."""

    def __init__(
        self,
        source: SourceTag,
        listings: list[Listing] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.source_name = source
        self.listings = listings or []
        self.error = error
        self.delay = delay
        self.calls: list[QueryParams] = []

    async def fetch_listings(self, params: QueryParams) -> list[Listing]:
        self.calls.append(params)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.listings)


def build_listing(
    listing_id: str,
    source: SourceTag | str = SourceTag.SREALITY,
    price: Any = None,
    size: Any = None,
    location: str = "",
    **extra: Any,
) -> Listing:
    return Listing(
        id=listing_id,
        url=f"https://example.test/{listing_id}",
        source=source,
        name=extra.pop("name", listing_id),
        location=location,
        size=size,
        price=price,
        timestamp=FIXED_TIME,
        **extra,
    )


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def make_listing():
    return build_listing


@pytest.fixture
def fake_collector():
    return FakeCollector


@pytest.fixture
def query_params():
    def _build(raw: dict[str, Any] | None = None, **kwargs: Any) -> QueryParams:
        return QueryParams.from_mapping(raw, **kwargs)

    return _build
