"""
Acquisition Layer

RESPONSIBILITY: Pull draw results from unreliable external sources
ALLOWED INPUTS: Source configuration, HTTP responses, local cache
OUTPUTS: ResultSet (entries + provenance)

WHAT THIS LAYER MUST NOT DO:
============================
- Raise past `AcquisitionPipeline.acquire`
- Let unvalidated payloads reach the History Store
- Present synthetic or stale data as live
"""

from .contracts import (
    FetchResult, FetchStatus, Invalid, ParseOutcome, Parsed, Provenance,
    RawResponse, RelayConfig, RequestKind, ResultSet, SourceDescriptor, SourceKind,
)
from .cache import CacheEntry, CacheService, InMemoryCache, JsonFileCache, cache_key
from .extractor import DEFAULT_PATTERN_SETS, HtmlResultExtractor, PatternSet, extract
from .fetcher import SourceFetcher
from .parsers import PayloadParser
from .pipeline import AcquisitionPipeline
from .reporting import CommunityReporter
from .sources import SourceRegistry
from .synthetic import SYNTHETIC_SOURCE, SyntheticGenerator

__all__ = [
    'FetchResult', 'FetchStatus', 'Invalid', 'ParseOutcome', 'Parsed', 'Provenance',
    'RawResponse', 'RelayConfig', 'RequestKind', 'ResultSet', 'SourceDescriptor', 'SourceKind',
    'CacheEntry', 'CacheService', 'InMemoryCache', 'JsonFileCache', 'cache_key',
    'DEFAULT_PATTERN_SETS', 'HtmlResultExtractor', 'PatternSet', 'extract',
    'SourceFetcher', 'PayloadParser', 'AcquisitionPipeline', 'CommunityReporter',
    'SourceRegistry', 'SYNTHETIC_SOURCE', 'SyntheticGenerator',
]
