from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping, Sequence

from realty_aggregator.core.models import Listing, QueryParams, SourceOutcome, SourceTag
from realty_aggregator.core.progress import ERROR, ProgressReporter, safe_report

if TYPE_CHECKING:
    from realty_aggregator.collectors.base import Collector


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class FetchResult:
    listings: list[Listing] = field(default_factory=list)
    outcomes: dict[SourceTag, SourceOutcome] = field(default_factory=dict)

    def describe_outcomes(self) -> dict[str, int | str]:
        return {tag.value: outcome.describe() for tag, outcome in self.outcomes.items()}


class FetchOrchestrator:
    def __init__(
        self,
        collectors: Mapping[SourceTag, "Collector"],
        reporter: ProgressReporter | None = None,
        timeout_seconds: float | None = 60.0,
    ) -> None:
        self.collectors = dict(collectors)
        self.reporter = reporter
        self.timeout_seconds = timeout_seconds

    async def fetch(self, sources: Sequence[SourceTag], params: QueryParams) -> FetchResult:
        ordered = list(dict.fromkeys(sources))
        if not ordered:
            return FetchResult()

        missing = [tag.value for tag in ordered if tag not in self.collectors]
        if missing:
            raise ValueError(f"No collector configured for sources: {', '.join(missing)}")

        # Fan out, then wait for every task; a failed source contributes nothing.
        results = await asyncio.gather(*(self._run_source(tag, params) for tag in ordered))

        merged = FetchResult()
        for tag, (listings, outcome) in zip(ordered, results):
            merged.outcomes[tag] = outcome
            merged.listings.extend(listings)

        safe_report(self.reporter, _summary_message(merged))
        return merged

    async def _run_source(self, tag: SourceTag, params: QueryParams) -> tuple[list[Listing], SourceOutcome]:
        collector = self.collectors[tag]
        task = asyncio.ensure_future(collector.fetch_listings(params))
        # asyncio.wait never raises the task's own exception, so a TimeoutError
        # from inside the collector is not mistaken for this deadline.
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout_seconds or None)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if not done:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            return self._failed(tag, f"timed out after {self.timeout_seconds:g}s")
        try:
            listings = task.result()
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Source=%s fetch failed", tag.value, exc_info=True)
            return self._failed(tag, str(exc) or type(exc).__name__)

        listings = list(listings or [])
        safe_report(self.reporter, f"{tag.value}: found {len(listings)} listings")
        return listings, SourceOutcome(source=tag, count=len(listings))

    def _failed(self, tag: SourceTag, reason: str) -> tuple[list[Listing], SourceOutcome]:
        safe_report(self.reporter, f"{tag.value} failed: {reason}", ERROR)
        return [], SourceOutcome(source=tag, error=reason)


def _summary_message(result: FetchResult) -> str:
    lines = [f"Search completed: Total: {len(result.listings)} listings"]
    for tag, outcome in result.outcomes.items():
        lines.append(f"{tag.value}: {outcome.describe()}" + ("" if outcome.failed else " listings"))
    return "\n".join(lines)
