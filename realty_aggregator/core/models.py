from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from realty_aggregator.core.normalize import compute_price_per_meter, safe_float


LOCATIONS = ("praha", "brno", "ostrava")
QUERY_NUMERIC_FIELDS = {
    "sizeFrom": "size_from",
    "sizeTo": "size_to",
    "priceFrom": "price_from",
    "priceTo": "price_to",
}


class SourceTag(str, Enum):
    SREALITY = "sreality"
    BEZREALITKY = "bezrealitky"
    IDNES = "idnes"
    REMAX = "remax"

    @classmethod
    def parse(cls, value: str) -> "SourceTag":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown source tag: {value!r}") from None


ALL_SOURCES: tuple[SourceTag, ...] = tuple(SourceTag)


class InvalidQueryError(ValueError):
    pass


@dataclass(slots=True)
class Listing:
    id: str
    url: str
    source: SourceTag
    name: str = ""
    location: str = ""
    size: float | None = None
    price: float | None = None
    price_per_meter: int | None = None
    images: tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    group_tag: str | None = None
    duplicate_count: int | None = None

    def __post_init__(self) -> None:
        self.source = SourceTag(self.source)
        # Adapters may hand over raw strings; anything unparseable is treated as absent.
        self.size = safe_float(self.size)
        self.price = safe_float(self.price)
        self.price_per_meter = compute_price_per_meter(self.price, self.size)
        self.name = self.name or ""
        self.location = self.location or ""
        self.images = tuple(self.images or ())

    @property
    def has_complete_key(self) -> bool:
        return self.price is not None and self.size is not None


@dataclass(slots=True)
class DuplicateGroup:
    key: tuple[int | None, int | None, str]
    members: list[Listing] = field(default_factory=list)
    tag: str | None = None

    @property
    def is_duplicate(self) -> bool:
        return len(self.members) > 1


@dataclass(frozen=True, slots=True)
class Snapshot:
    listings: tuple[Listing, ...]
    produced_at: datetime


@dataclass(frozen=True, slots=True)
class SourceOutcome:
    source: SourceTag
    count: int = 0
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def describe(self) -> int | str:
        return f"failed: {self.error}" if self.failed else self.count


@dataclass(frozen=True, slots=True)
class QueryParams:
    location: str
    sources: tuple[SourceTag, ...] = ()
    size_from: str | None = None
    size_to: str | None = None
    price_from: str | None = None
    price_to: str | None = None
    raw: Mapping[str, Any] = field(default_factory=dict)

    @property
    def provided(self) -> bool:
        """True when the caller passed any parameter at all."""
        return bool(self.raw)

    @classmethod
    def from_mapping(
        cls,
        raw: Mapping[str, Any] | None,
        default_location: str = "praha",
        available_sources: tuple[SourceTag, ...] = ALL_SOURCES,
    ) -> "QueryParams":
        raw = dict(raw or {})

        location = str(raw.get("location") or default_location).strip().lower()
        if location not in LOCATIONS:
            raise InvalidQueryError(f"location must be one of {', '.join(LOCATIONS)}; got {location!r}")

        numeric: dict[str, str | None] = {}
        for key, attr in QUERY_NUMERIC_FIELDS.items():
            value = raw.get(key)
            if value is None or str(value).strip() == "":
                numeric[attr] = None
                continue
            text = str(value).strip()
            if safe_float(text) is None:
                raise InvalidQueryError(f"{key} must be numeric; got {value!r}")
            numeric[attr] = text

        sources_raw = raw.get("sources")
        if sources_raw:
            names = sources_raw.split(",") if isinstance(sources_raw, str) else list(sources_raw)
            sources: list[SourceTag] = []
            for name in names:
                if not str(name).strip():
                    continue
                try:
                    tag = SourceTag.parse(str(name))
                except ValueError as exc:
                    raise InvalidQueryError(str(exc)) from None
                if tag not in available_sources:
                    raise InvalidQueryError(f"Source {tag.value!r} is not enabled")
                if tag not in sources:
                    sources.append(tag)
        else:
            # Left empty: the service falls back to every source it has configured.
            sources = []

        return cls(location=location, sources=tuple(sources), raw=raw, **numeric)
