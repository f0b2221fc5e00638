import json

from realty_aggregator.core.models import SourceTag
from realty_aggregator.core.settings import Settings
from realty_aggregator.jobs import search as search_job


def _patch_collectors(monkeypatch, collectors):
    monkeypatch.setattr(search_job, "build_collectors", lambda sources, **kwargs: collectors)
    monkeypatch.setenv("ENABLED_SOURCES", ",".join(tag.value for tag in collectors))
    monkeypatch.delenv("PROGRESS_WEBHOOK_URL", raising=False)


def test_main_writes_response_and_reuses_cache(monkeypatch, tmp_path, make_listing, fake_collector):
    collector = fake_collector(SourceTag.SREALITY, listings=[make_listing("a", price=3000000, size=60)])
    _patch_collectors(monkeypatch, {SourceTag.SREALITY: collector})
    output = tmp_path / "listings.json"

    exit_code = search_job.main(["--repeat", "2", "--output", str(output)])

    assert exit_code == 0
    assert len(collector.calls) == 1
    response = json.loads(output.read_text(encoding="utf-8"))
    assert response["count"] == 1
    assert response["cached"] is True
    assert response["stats"] == {"total": 1, "sreality": 1}


def test_main_passes_query_arguments(monkeypatch, tmp_path, fake_collector):
    collector = fake_collector(SourceTag.SREALITY)
    _patch_collectors(monkeypatch, {SourceTag.SREALITY: collector})
    output = tmp_path / "listings.json"

    exit_code = search_job.main(["--location", "brno", "--price-to", "9000000", "--output", str(output)])

    assert exit_code == 0
    assert collector.calls[0].location == "brno"
    assert collector.calls[0].price_to == "9000000"
    assert json.loads(output.read_text(encoding="utf-8"))["searchParams"] == {
        "location": "brno",
        "priceTo": "9000000",
    }


def test_main_rejects_invalid_query(monkeypatch, fake_collector):
    _patch_collectors(monkeypatch, {SourceTag.SREALITY: fake_collector(SourceTag.SREALITY)})
    assert search_job.main(["--location", "vienna"]) == 2


def test_build_service_shares_reporter_with_collectors(monkeypatch):
    monkeypatch.setenv("ENABLED_SOURCES", "sreality,remax")
    monkeypatch.delenv("PROGRESS_WEBHOOK_URL", raising=False)

    service, webhooks = search_job.build_service(Settings.from_env())

    assert webhooks == []
    collectors = service.orchestrator.collectors
    assert list(collectors) == [SourceTag.SREALITY, SourceTag.REMAX]
    assert all(collector.reporter is service.reporter for collector in collectors.values())
