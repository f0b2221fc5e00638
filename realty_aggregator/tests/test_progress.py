import asyncio
import json
import logging

import httpx

from realty_aggregator.core.progress import (
    CompositeProgressReporter,
    LoggingProgressReporter,
    WebhookProgressReporter,
    safe_report,
)


def test_logging_reporter_maps_levels(caplog):
    reporter = LoggingProgressReporter(logging.getLogger("test.progress"))
    with caplog.at_level(logging.INFO, logger="test.progress"):
        reporter.report("sreality: found 3 listings")
        reporter.report("idnes failed: blocked", "error")
    assert [(r.levelno, r.getMessage()) for r in caplog.records] == [
        (logging.INFO, "sreality: found 3 listings"),
        (logging.ERROR, "idnes failed: blocked"),
    ]


def test_composite_keeps_going_when_one_reporter_fails(reporter):
    class Broken:
        def report(self, message, level="info"):
            raise RuntimeError("channel closed")

    composite = CompositeProgressReporter([Broken(), reporter])
    composite.report("hello")
    safe_report(Broken(), "ignored")
    assert reporter.events == [("hello", "info")]


def test_webhook_reporter_posts_event_payload():
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(204)

    webhook = WebhookProgressReporter("https://hooks.example.test/progress", transport=httpx.MockTransport(handler))

    async def scenario():
        webhook.report("remax failed: timed out", "error")
        await webhook.drain()

    asyncio.run(scenario())

    assert len(received) == 1
    assert received[0]["message"] == "remax failed: timed out"
    assert received[0]["type"] == "error"
    assert "timestamp" in received[0]


def test_webhook_reporter_swallows_delivery_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    webhook = WebhookProgressReporter("https://hooks.example.test/progress", transport=httpx.MockTransport(handler))

    async def scenario():
        webhook.report("hello")
        await webhook.drain()

    asyncio.run(scenario())
    webhook.report("no loop running")
