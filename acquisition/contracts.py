"""
Acquisition Contracts

Immutable data structures for the result acquisition pipeline.

BOUNDARY: Acquisition Layer
All externally sourced draw results enter through these contracts.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, Union

from prediction.history import HistoryEntry
from prediction.registry import LotteryId


# =============================================================================
# ENUMS
# =============================================================================

class SourceKind(Enum):
    """How a source is fetched and parsed."""
    API = "api"
    SCRAPING = "scraping"
    COMMUNITY = "community"


class RequestKind(Enum):
    """What is being acquired."""
    TODAY = "today"
    HISTORY = "history"


class FetchStatus(Enum):
    """Status of a single source attempt."""
    SUCCESS = "success"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"
    NETWORK_ERROR = "network_error"
    EMPTY = "empty"
    SKIPPED = "skipped"


class Provenance(Enum):
    """Where a ResultSet came from."""
    LIVE = "live"
    CACHED = "cached"
    STALE = "stale"
    SYNTHETIC = "synthetic"


# =============================================================================
# SOURCE CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class SourceDescriptor:
    """Configuration for a single data source."""
    name: str
    endpoint: str
    kind: SourceKind
    priority: int
    is_active: bool = True
    history_endpoint: Optional[str] = None
    headers: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
    min_interval: Optional[float] = None  # seconds, overrides the pipeline delay
    pattern_set: Optional[str] = None

    def endpoint_for(self, kind: RequestKind) -> Optional[str]:
        if kind == RequestKind.HISTORY:
            return self.history_endpoint
        return self.endpoint

    def header_dict(self) -> dict:
        return dict(self.headers)


@dataclass(frozen=True)
class RelayConfig:
    """
    CORS relay in front of a source URL.

    The target URL is percent-encoded and appended to `prefix`. When
    `json_field` is set, the relay wraps the body in a JSON envelope and
    the real content sits under that key.
    """
    prefix: str
    json_field: Optional[str] = None
    enabled: bool = True


# =============================================================================
# FETCH RESULT CONTRACTS
# =============================================================================

@dataclass(frozen=True)
class FetchResult:
    """
    Result of one source attempt (success or failure).

    Failed attempts are FIRST-CLASS outputs, not exceptions.
    """
    source_name: str
    url: str
    attempted_at: datetime
    completed_at: datetime
    status: FetchStatus
    entries_count: int = 0
    error_message: Optional[str] = None
    http_status: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.status == FetchStatus.SUCCESS

    @property
    def duration_ms(self) -> float:
        return (self.completed_at - self.attempted_at).total_seconds() * 1000


@dataclass(frozen=True)
class RawResponse:
    """Body of a successful HTTP GET, after any relay unwrapping."""
    url: str
    http_status: int
    text: str
    via_relay: Optional[str] = None


# =============================================================================
# PARSE OUTCOMES (tagged union)
# =============================================================================

@dataclass(frozen=True)
class Parsed:
    """Payload validated; entries are resolved."""
    entries: Tuple[HistoryEntry, ...]
    dropped: int = 0


@dataclass(frozen=True)
class Invalid:
    """Payload rejected at the boundary."""
    reason: str


ParseOutcome = Union[Parsed, Invalid]


# =============================================================================
# RESULT SET
# =============================================================================

@dataclass(frozen=True)
class ResultSet:
    """
    Outcome of an acquisition request. Always well-formed.

    `provenance` tells real data apart from cached, stale and
    synthetic data.
    """
    lottery_id: LotteryId
    kind: RequestKind
    entries: Tuple[HistoryEntry, ...]
    provenance: Provenance
    sources: Tuple[str, ...] = field(default_factory=tuple)
    fetched_at: Optional[datetime] = None
    attempts: Tuple[FetchResult, ...] = field(default_factory=tuple)

    @property
    def is_real(self) -> bool:
        return self.provenance != Provenance.SYNTHETIC

    def to_dict(self) -> dict:
        return {
            'lottery': self.lottery_id.value,
            'kind': self.kind.value,
            'provenance': self.provenance.value,
            'sources': list(self.sources),
            'fetched_at': self.fetched_at.isoformat() if self.fetched_at else None,
            'entries': [e.to_dict() for e in self.entries],
            'attempts': [
                {
                    'source': a.source_name,
                    'status': a.status.value,
                    'entries': a.entries_count,
                    'error': a.error_message,
                    'duration_ms': round(a.duration_ms, 1),
                }
                for a in self.attempts
            ],
        }
