from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any

from realty_aggregator.collectors.registry import build_collectors
from realty_aggregator.core.cache import SnapshotCache
from realty_aggregator.core.models import InvalidQueryError, QueryParams
from realty_aggregator.core.orchestrator import FetchOrchestrator
from realty_aggregator.core.progress import (
    CompositeProgressReporter,
    LoggingProgressReporter,
    ProgressReporter,
    WebhookProgressReporter,
)
from realty_aggregator.core.service import SearchFailedError, SearchService
from realty_aggregator.core.settings import Settings


LOGGER = logging.getLogger(__name__)

QUERY_ARGUMENTS = {
    "location": "location",
    "size_from": "sizeFrom",
    "size_to": "sizeTo",
    "price_from": "priceFrom",
    "price_to": "priceTo",
    "sources": "sources",
}


def build_service(settings: Settings) -> tuple[SearchService, list[WebhookProgressReporter]]:
    reporters: list[ProgressReporter] = [LoggingProgressReporter()]
    webhooks: list[WebhookProgressReporter] = []
    if settings.progress_webhook_url:
        webhook = WebhookProgressReporter(settings.progress_webhook_url)
        reporters.append(webhook)
        webhooks.append(webhook)
    reporter = CompositeProgressReporter(reporters)

    collectors = build_collectors(
        settings.enabled_sources,
        timeout_seconds=settings.collector_timeout_seconds,
        max_attempts=settings.collector_max_attempts,
        reporter=reporter,
    )
    orchestrator = FetchOrchestrator(collectors, reporter, timeout_seconds=settings.source_timeout_seconds)
    cache = SnapshotCache(ttl=timedelta(seconds=settings.cache_ttl_seconds))
    service = SearchService(orchestrator, cache, reporter, sources=settings.enabled_sources)
    return service, webhooks


async def run_search(settings: Settings, raw_params: dict[str, Any], repeat: int = 1) -> dict[str, Any]:
    params = QueryParams.from_mapping(
        raw_params,
        default_location=settings.default_location,
        available_sources=settings.enabled_sources,
    )
    service, webhooks = build_service(settings)
    response: dict[str, Any] = {}
    try:
        for attempt in range(1, max(1, repeat) + 1):
            response = await service.search(params)
            LOGGER.info(
                "Search run=%s/%s count=%s cached=%s",
                attempt,
                repeat,
                response["count"],
                response["cached"],
            )
    finally:
        for webhook in webhooks:
            await webhook.drain()
    return response


def _raw_params_from_args(args: argparse.Namespace) -> dict[str, Any]:
    raw: dict[str, Any] = {}
    for attr, key in QUERY_ARGUMENTS.items():
        value = getattr(args, attr)
        if value is not None:
            raw[key] = value
    return raw


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Search all configured listing sources and group duplicates.")
    parser.add_argument("--location", help="City: praha, brno or ostrava.")
    parser.add_argument("--size-from", help="Minimum usable area in m².")
    parser.add_argument("--size-to", help="Maximum usable area in m².")
    parser.add_argument("--price-from", help="Minimum price in CZK.")
    parser.add_argument("--price-to", help="Maximum price in CZK.")
    parser.add_argument("--sources", help="Comma separated subset of sources.")
    parser.add_argument("--repeat", type=int, default=1, help="Run the same search N times against one cache.")
    parser.add_argument("--output", type=Path, help="Write the JSON response to this file instead of stdout.")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(message)s")

    try:
        response = asyncio.run(run_search(settings, _raw_params_from_args(args), repeat=args.repeat))
    except InvalidQueryError as exc:
        LOGGER.error("Invalid search parameters: %s", exc)
        return 2
    except SearchFailedError as exc:
        LOGGER.error("%s", exc)
        return 1

    serialized = json.dumps(response, ensure_ascii=False, indent=2)
    if args.output:
        args.output.write_text(serialized, encoding="utf-8")
        LOGGER.info("Wrote %s listings to %s", response["count"], args.output)
    else:
        sys.stdout.write(serialized + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
