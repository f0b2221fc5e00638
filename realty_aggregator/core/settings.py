from __future__ import annotations

import os
from dataclasses import dataclass

from realty_aggregator.core.models import ALL_SOURCES, LOCATIONS, SourceTag


LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True, slots=True)
class Settings:
    cache_ttl_seconds: int = 300
    source_timeout_seconds: float | None = 60.0
    collector_timeout_seconds: float = 20.0
    collector_max_attempts: int = 2
    default_location: str = "praha"
    enabled_sources: tuple[SourceTag, ...] = ALL_SOURCES
    progress_webhook_url: str | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        source_timeout = _env_float("SOURCE_TIMEOUT_SECONDS", 60.0)
        default_location = (os.environ.get("DEFAULT_LOCATION") or "praha").strip().lower()
        if default_location not in LOCATIONS:
            default_location = "praha"
        return cls(
            cache_ttl_seconds=max(0, _env_int("CACHE_TTL_SECONDS", 300)),
            source_timeout_seconds=source_timeout if source_timeout > 0 else None,
            collector_timeout_seconds=max(1.0, _env_float("COLLECTOR_TIMEOUT_SECONDS", 20.0)),
            collector_max_attempts=max(1, _env_int("COLLECTOR_MAX_ATTEMPTS", 2)),
            default_location=default_location,
            enabled_sources=parse_sources(os.environ.get("ENABLED_SOURCES")),
            progress_webhook_url=(os.environ.get("PROGRESS_WEBHOOK_URL") or "").strip() or None,
            log_level=_env_log_level("LOG_LEVEL", "INFO"),
        )


def parse_sources(raw: str | None) -> tuple[SourceTag, ...]:
    """
    Comma separated source tags; empty means every known source.
    Unknown tags raise ValueError.
    """
    if raw is None or not raw.strip():
        return ALL_SOURCES
    tags: list[SourceTag] = []
    for name in raw.split(","):
        if not name.strip():
            continue
        tag = SourceTag.parse(name)
        if tag not in tags:
            tags.append(tag)
    return tuple(tags) or ALL_SOURCES


def _env_log_level(name: str, default: str) -> str:
    value = (os.environ.get(name) or default).strip().upper()
    return value if value in LOG_LEVELS else default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except (TypeError, ValueError):
        return default
