from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterable

import httpx


LOGGER = logging.getLogger(__name__)

INFO = "info"
ERROR = "error"


class ProgressReporter(ABC):
    @abstractmethod
    def report(self, message: str, level: str = INFO) -> None:
        """Publish a human-readable progress event. Must not block."""


class LoggingProgressReporter(ProgressReporter):
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("realty_aggregator.progress")

    def report(self, message: str, level: str = INFO) -> None:
        if level == ERROR:
            self.logger.error(message)
        else:
            self.logger.info(message)


class WebhookProgressReporter(ProgressReporter):
    """
    Posts each event as JSON to a webhook. Delivery is scheduled on the running
    event loop and never awaited by the caller; failures are only logged.
    """

    def __init__(self, url: str, timeout_seconds: float = 5.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.transport = transport
        self._pending: set[asyncio.Task[None]] = set()

    def report(self, message: str, level: str = INFO) -> None:
        payload = _event_payload(message, level)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running loop; dropping progress event for %s", self.url)
            return
        task = loop.create_task(self._post(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _post(self, payload: dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
                response = await client.post(self.url, json=payload)
            if response.status_code >= 400:
                LOGGER.warning("Progress webhook rejected event status=%s", response.status_code)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Progress webhook delivery failed: %s", exc)


class CompositeProgressReporter(ProgressReporter):
    def __init__(self, reporters: Iterable[ProgressReporter]) -> None:
        self.reporters = list(reporters)

    def report(self, message: str, level: str = INFO) -> None:
        for reporter in self.reporters:
            safe_report(reporter, message, level)


def safe_report(reporter: ProgressReporter | None, message: str, level: str = INFO) -> None:
    if reporter is None:
        return
    try:
        reporter.report(message, level)
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("Progress reporter %s failed: %s", type(reporter).__name__, exc)


def _event_payload(message: str, level: str) -> dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "message": message,
        "type": level,
    }
