from __future__ import annotations

from typing import Any, Iterable

from realty_aggregator.collectors.base import Collector
from realty_aggregator.collectors.bezrealitky.collector import BezrealitkyCollector
from realty_aggregator.collectors.idnes.collector import IdnesCollector
from realty_aggregator.collectors.remax.collector import RemaxCollector
from realty_aggregator.collectors.sreality.collector import SrealityCollector
from realty_aggregator.core.models import SourceTag


COLLECTOR_CLASSES: dict[SourceTag, type[Collector]] = {
    SourceTag.SREALITY: SrealityCollector,
    SourceTag.BEZREALITKY: BezrealitkyCollector,
    SourceTag.IDNES: IdnesCollector,
    SourceTag.REMAX: RemaxCollector,
}


def build_collectors(sources: Iterable[SourceTag | str], **collector_kwargs: Any) -> dict[SourceTag, Collector]:
    """
    Resolve each source tag to its collector once, at configuration time.
    Unknown tags raise ValueError.
    """
    collectors: dict[SourceTag, Collector] = {}
    for source in sources:
        tag = source if isinstance(source, SourceTag) else SourceTag.parse(source)
        collector_class = COLLECTOR_CLASSES.get(tag)
        if collector_class is None:
            raise ValueError(f"No collector implementation for source={tag.value}")
        collectors[tag] = collector_class(**collector_kwargs)
    return collectors
