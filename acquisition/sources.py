"""
Source Registry

Loads and manages data-source configuration from sources.json.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import json

from prediction.registry import LotteryId, parse_lottery_id

from .contracts import RelayConfig, RequestKind, SourceDescriptor, SourceKind

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'sources.json'

DEFAULT_TTLS: Dict[SourceKind, float] = {
    SourceKind.API: 300.0,
    SourceKind.SCRAPING: 600.0,
    SourceKind.COMMUNITY: 120.0,
}


def ordered(sources: List[SourceDescriptor]) -> List[SourceDescriptor]:
    """Stable sort by priority; declaration order breaks ties."""
    return sorted(sources, key=lambda s: s.priority)


@dataclass
class SourceRegistry:
    """
    Registry of all configured data sources.

    Loads from acquisition/sources.json and provides query methods.
    """

    _sources: Dict[LotteryId, List[SourceDescriptor]]
    _ttls: Dict[SourceKind, float]
    _relays: Tuple[RelayConfig, ...]
    _min_interval: float = 2.0
    _timeout: float = 10.0
    _report_url: Optional[str] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> 'SourceRegistry':
        """Load registry from a JSON file (defaults to the bundled sources.json)."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)

        return cls.from_dict(config)

    @classmethod
    def from_dict(cls, config: dict) -> 'SourceRegistry':
        sources: Dict[LotteryId, List[SourceDescriptor]] = {lottery: [] for lottery in LotteryId}

        for lottery_name, entries in config.get('lotteries', {}).items():
            lottery = parse_lottery_id(lottery_name)
            for source_data in entries:
                sources[lottery].append(cls._descriptor(source_data))

        ttls = dict(DEFAULT_TTLS)
        for kind_name, ttl in config.get('cache_ttl_seconds', {}).items():
            ttls[SourceKind(kind_name)] = float(ttl)

        relays = tuple(
            RelayConfig(
                prefix=r['prefix'],
                json_field=r.get('json_field'),
                enabled=r.get('enabled', True)
            )
            for r in config.get('relays', [])
        )

        limits = config.get('rate_limits', {})
        return cls(
            _sources=sources,
            _ttls=ttls,
            _relays=relays,
            _min_interval=float(limits.get('min_interval_seconds', 2.0)),
            _timeout=float(limits.get('timeout_seconds', 10.0)),
            _report_url=config.get('community_report_url'),
        )

    @staticmethod
    def _descriptor(data: dict) -> SourceDescriptor:
        min_interval = data.get('min_interval_seconds')
        return SourceDescriptor(
            name=data['name'],
            endpoint=data['endpoint'],
            kind=SourceKind(data['kind']),
            priority=int(data.get('priority', 100)),
            is_active=data.get('enabled', True),
            history_endpoint=data.get('history_endpoint'),
            headers=tuple(data.get('headers', {}).items()),
            min_interval=float(min_interval) if min_interval is not None else None,
            pattern_set=data.get('pattern_set'),
        )

    def all_sources(self, lottery_id) -> List[SourceDescriptor]:
        """All sources of a lottery in declaration order."""
        return list(self._sources.get(parse_lottery_id(lottery_id), []))

    def chain(self, lottery_id, kind: RequestKind = RequestKind.TODAY) -> List[SourceDescriptor]:
        """Active sources that can serve `kind`, in probing order."""
        return [
            s for s in ordered(self.all_sources(lottery_id))
            if s.is_active and s.endpoint_for(kind)
        ]

    def ttl_for(self, kind: SourceKind) -> float:
        return self._ttls.get(kind, DEFAULT_TTLS[kind])

    @property
    def relays(self) -> Tuple[RelayConfig, ...]:
        return tuple(r for r in self._relays if r.enabled)

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def report_url(self) -> Optional[str]:
        return self._report_url

    def stats(self) -> dict:
        """Get registry statistics."""
        return {
            lottery.value: {
                'total': len(sources),
                'active': sum(1 for s in sources if s.is_active),
                'by_kind': {
                    kind.value: sum(1 for s in sources if s.kind == kind)
                    for kind in SourceKind
                },
            }
            for lottery, sources in self._sources.items()
        }
