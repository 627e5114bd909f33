"""
Source Registry Tests
"""

import json

import pytest

from acquisition.contracts import RequestKind, SourceKind
from acquisition.sources import SourceRegistry
from prediction.registry import LotteryId

from .fixtures import api_source, registry_of


class TestBundledConfiguration:

    @pytest.fixture
    def registry(self):
        return SourceRegistry.load()

    def test_every_lottery_has_a_chain(self, registry):
        for lottery in LotteryId:
            chain = registry.chain(lottery)
            assert chain
            priorities = [s.priority for s in chain]
            assert priorities == sorted(priorities)
            assert all(s.is_active for s in chain)

    def test_default_policy(self, registry):
        assert registry.min_interval == 2.0
        assert registry.timeout == 10.0
        assert registry.ttl_for(SourceKind.API) == 300.0
        assert registry.ttl_for(SourceKind.SCRAPING) == 600.0
        assert registry.ttl_for(SourceKind.COMMUNITY) == 120.0

    def test_lotoven_has_its_own_interval(self, registry):
        lotoven = [s for s in registry.all_sources(LotteryId.GUACHARO) if s.name == "LotoVen"][0]
        assert lotoven.min_interval == 5.0
        assert lotoven.pattern_set == "lotoven"

    def test_stats(self, registry):
        stats = registry.stats()
        assert set(stats) == {"LOTTO_ACTIVO", "GUACHARO"}
        assert stats["GUACHARO"]["total"] >= stats["GUACHARO"]["active"]


class TestFromDict:

    def test_history_chain_needs_history_endpoint(self):
        registry = registry_of(api_source("A", 1, history=False), api_source("B", 2))
        assert [s.name for s in registry.chain(LotteryId.LOTTO_ACTIVO, RequestKind.HISTORY)] == ["B"]
        assert [s.name for s in registry.chain(LotteryId.LOTTO_ACTIVO)] == ["A", "B"]

    def test_ttl_overrides(self):
        registry = registry_of(cache_ttl_seconds={"community": 30})
        assert registry.ttl_for(SourceKind.COMMUNITY) == 30.0
        assert registry.ttl_for(SourceKind.API) == 300.0

    def test_only_enabled_relays_exposed(self):
        registry = registry_of(relays=[
            {"prefix": "https://a.test/?u=", "json_field": "contents"},
            {"prefix": "https://b.test/?u=", "enabled": False},
        ])
        assert [r.prefix for r in registry.relays] == ["https://a.test/?u="]
        assert registry.relays[0].json_field == "contents"

    def test_headers_kept(self):
        registry = registry_of(api_source("A", 1, headers={"Accept": "application/json"}))
        source = registry.all_sources(LotteryId.LOTTO_ACTIVO)[0]
        assert source.header_dict() == {"Accept": "application/json"}

    def test_unknown_lottery_rejected(self):
        with pytest.raises(KeyError):
            registry_of(api_source("A", 1), lottery="LA_GRANJITA")

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            registry_of({"name": "X", "endpoint": "https://x.test", "kind": "carrier-pigeon"})

    def test_load_from_path(self, tmp_path):
        path = tmp_path / "sources.json"
        path.write_text(json.dumps({"lotteries": {"GUACHARO": [api_source("Only", 1)]}}), encoding="utf-8")
        registry = SourceRegistry.load(path)
        assert [s.name for s in registry.chain("guacharo")] == ["Only"]
        assert registry.chain(LotteryId.LOTTO_ACTIVO) == []
