from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence

from realty_aggregator.core.models import Listing, QueryParams, Snapshot


DEFAULT_TTL = timedelta(minutes=5)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotCache:
    """
    Holds the single most recent processed result set for the process.

    Created once at startup and handed to the search service. Every read and
    write goes through one lock; snapshots are immutable, so a reader either
    sees the previous snapshot or the new one, never a partial update.

    Any query parameter forces a refresh, even one identical to the previous
    request, so only parameterless requests are ever served from the snapshot.
    """

    def __init__(self, ttl: timedelta = DEFAULT_TTL, clock: Callable[[], datetime] = _utcnow) -> None:
        self.ttl = ttl
        self.clock = clock
        self._snapshot: Snapshot | None = None
        self._lock = asyncio.Lock()

    async def should_refresh(self, params: QueryParams) -> bool:
        async with self._lock:
            if params.provided or self._snapshot is None:
                return True
            return self._age(self._snapshot) > self.ttl

    async def read(self) -> Snapshot | None:
        async with self._lock:
            return self._snapshot

    async def write(self, listings: Sequence[Listing]) -> Snapshot:
        snapshot = Snapshot(listings=tuple(listings), produced_at=self.clock())
        async with self._lock:
            self._snapshot = snapshot
        return snapshot

    async def age(self) -> timedelta | None:
        async with self._lock:
            return self._age(self._snapshot) if self._snapshot is not None else None

    async def clear(self) -> None:
        async with self._lock:
            self._snapshot = None

    def _age(self, snapshot: Snapshot) -> timedelta:
        return self.clock() - snapshot.produced_at
