"""
Animalito Service Facade
========================

Unified entry point over acquisition, history, scoring and the schedule.

RESPONSIBILITIES:
=================
1. Run today + history acquisition concurrently and merge only after both finish
2. Memoize predictions per (lottery, history version)
3. Keep synthetic data out of the way once real data exists
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional, Set, Tuple
import asyncio
import logging
import threading

from acquisition.cache import CacheService, InMemoryCache, JsonFileCache
from acquisition.contracts import RequestKind, ResultSet
from acquisition.fetcher import SourceFetcher
from acquisition.pipeline import AcquisitionPipeline, parse_request_kind
from acquisition.reporting import CommunityReporter
from acquisition.sources import SourceRegistry
from acquisition.synthetic import SYNTHETIC_SOURCE
from oracle.providers import GeminiProvider, InvocationParams, MockProvider
from oracle.refiner import PredictionRefiner
from prediction.engine import PredictionEngine, PredictionResult
from prediction.history import HistoryStore
from prediction.registry import DEFAULT_REGISTRY, AnimalRegistry, LotteryId, parse_lottery_id, slots_for
from prediction.resolver import IdentifierResolver
from prediction.schedule import SlotStatus, countdown, schedule

from .config import ServiceConfig

logger = logging.getLogger(__name__)

LOTTERY_NAMES = {
    LotteryId.LOTTO_ACTIVO: "Lotto Activo",
    LotteryId.GUACHARO: "Guácharo Activo",
}


# =============================================================================
# RESULT RECORDS
# =============================================================================

@dataclass(frozen=True)
class RefreshReport:
    """What a refresh cycle fetched and how much of it was new."""
    lottery_id: LotteryId
    today: Optional[ResultSet]
    history: Optional[ResultSet]
    merged: int
    history_version: int

    def to_dict(self) -> dict:
        return {
            'lottery': self.lottery_id.value,
            'today': self.today.provenance.value if self.today else None,
            'history': self.history.provenance.value if self.history else None,
            'merged': self.merged,
            'history_version': self.history_version,
        }


@dataclass(frozen=True)
class PredictionSet:
    """Ranked predictions for one history version."""
    lottery_id: LotteryId
    predictions: Tuple[PredictionResult, ...]
    history_version: int
    history_size: int
    refined: bool = False
    fallback_reason: Optional[str] = None
    prompt_hash: Optional[str] = None     # set whenever the oracle was consulted
    oracle: Optional[str] = None          # "provider/model"
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            'lottery': self.lottery_id.value,
            'history_version': self.history_version,
            'history_size': self.history_size,
            'refined': self.refined,
            'fallback_reason': self.fallback_reason,
            'prompt_hash': self.prompt_hash,
            'oracle': self.oracle,
            'generated_at': self.generated_at.isoformat(),
            'predictions': [p.to_dict() for p in self.predictions],
        }


# =============================================================================
# SERVICE
# =============================================================================

class AnimalitoService:
    """
    Facade used by the HTTP API and the refresh scheduler.

    Collaborators are injected; `create_service` wires the defaults from
    a ServiceConfig.
    """

    def __init__(
        self,
        pipeline: AcquisitionPipeline,
        store: Optional[HistoryStore] = None,
        refiner: Optional[PredictionRefiner] = None,
        reporter: Optional[CommunityReporter] = None,
        registry: AnimalRegistry = DEFAULT_REGISTRY,
        default_predictions: int = 5,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._pipeline = pipeline
        self._store = store or HistoryStore()
        self._refiner = refiner
        self._reporter = reporter
        self._registry = registry
        self._resolver = IdentifierResolver(registry)
        self._default_predictions = default_predictions
        self._clock = clock or datetime.now

        self._memo: Dict[tuple, PredictionSet] = {}
        self._memo_lock = threading.Lock()
        self._seeded: Set[LotteryId] = set()
        self._provenance: Dict[LotteryId, Dict[str, str]] = {}

    @property
    def store(self) -> HistoryStore:
        return self._store

    @property
    def pipeline(self) -> AcquisitionPipeline:
        return self._pipeline

    @property
    def refinement_available(self) -> bool:
        return self._refiner is not None

    def now(self) -> datetime:
        return self._clock()

    # =========================================================================
    # ACQUISITION
    # =========================================================================

    async def refresh(self, lottery_id) -> RefreshReport:
        """
        Fetch today's and historical results concurrently.

        Both requests are awaited before anything touches the store, and
        a failure in one never prevents the other from being merged.
        """
        lottery = parse_lottery_id(lottery_id)
        outcomes = await asyncio.gather(
            self._pipeline.acquire(lottery, RequestKind.TODAY),
            self._pipeline.acquire(lottery, RequestKind.HISTORY),
            return_exceptions=True,
        )

        results: List[Optional[ResultSet]] = []
        for kind, outcome in zip((RequestKind.TODAY, RequestKind.HISTORY), outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.error("Refresh of %s/%s failed: %r", lottery.value, kind.value, outcome)
                results.append(None)
            else:
                results.append(outcome)

        today, history = results
        merged = self._merge(lottery, [r for r in (history, today) if r is not None])
        self._provenance[lottery] = {
            r.kind.value: r.provenance.value for r in (today, history) if r is not None
        }
        logger.info("Refreshed %s: %d new entries (version %d)",
                    lottery.value, merged, self._store.version(lottery))
        return RefreshReport(
            lottery_id=lottery,
            today=today,
            history=history,
            merged=merged,
            history_version=self._store.version(lottery),
        )

    def _merge(self, lottery: LotteryId, result_sets: List[ResultSet]) -> int:
        real = [r for r in result_sets if r.is_real]
        if real:
            if lottery in self._seeded:
                logger.info("Replacing synthetic seed for %s with real data", lottery.value)
                self._store.clear(lottery)
                self._seeded.discard(lottery)
            return sum(self._store.merge(lottery, r.entries) for r in real)

        # synthetic data only ever seeds an empty store
        if self._store.snapshot(lottery) and lottery not in self._seeded:
            return 0
        merged = sum(self._store.merge(lottery, r.entries) for r in result_sets)
        if merged:
            self._seeded.add(lottery)
        return merged

    async def results(self, lottery_id, kind=RequestKind.TODAY) -> ResultSet:
        """Acquire one kind of results and fold them into the history."""
        lottery = parse_lottery_id(lottery_id)
        result_set = await self._pipeline.acquire(lottery, parse_request_kind(kind))
        self._merge(lottery, [result_set])
        self._provenance.setdefault(lottery, {})[result_set.kind.value] = result_set.provenance.value
        return result_set

    def provenance(self, lottery_id) -> Dict[str, str]:
        return dict(self._provenance.get(parse_lottery_id(lottery_id), {}))

    # =========================================================================
    # PREDICTIONS
    # =========================================================================

    def predictions(self, lottery_id, n: Optional[int] = None, refine: bool = False) -> PredictionSet:
        """Top-n predictions for the current history version."""
        lottery = parse_lottery_id(lottery_id)
        n = self._default_predictions if n is None else n
        refine = refine and self._refiner is not None
        version = self._store.version(lottery)
        key = (lottery, version, n, refine)

        with self._memo_lock:
            cached = self._memo.get(key)
        if cached is not None:
            return cached

        history = self._store.snapshot(lottery)
        engine = PredictionEngine(history, self._registry, self._store.max_entries)
        ranked = tuple(engine.top_predictions(n))

        refined = False
        reason = prompt_hash = oracle = None
        if refine and ranked:
            outcome = self._refiner.refine(ranked, engine.history, LOTTERY_NAMES.get(lottery, lottery.value))
            ranked, refined, reason = outcome.predictions, outcome.refined, outcome.fallback_reason
            prompt_hash = outcome.prompt_hash
            if outcome.provider_version is not None:
                oracle = outcome.provider_version.label

        result = PredictionSet(
            lottery_id=lottery,
            predictions=ranked,
            history_version=version,
            history_size=len(engine.history),
            refined=refined,
            fallback_reason=reason,
            prompt_hash=prompt_hash,
            oracle=oracle,
        )
        with self._memo_lock:
            for stale in [k for k in self._memo if k[0] == lottery and k[1] != version]:
                del self._memo[stale]
            self._memo[key] = result
        return result

    # =========================================================================
    # SCHEDULE
    # =========================================================================

    def known_results(self, lottery_id, day: Optional[date] = None):
        """Today's real results; synthetic placeholders are not shown as draws."""
        day = day or self.now().date()
        return tuple(
            e for e in self._store.for_date(lottery_id, day)
            if e.source != SYNTHETIC_SOURCE
        )

    def schedule(self, lottery_id) -> List[SlotStatus]:
        now = self.now()
        return schedule(slots_for(lottery_id), self.known_results(lottery_id, now.date()), now)

    def countdown(self, lottery_id) -> str:
        return countdown(slots_for(lottery_id), self.now())

    # =========================================================================
    # COMMUNITY REPORTING
    # =========================================================================

    async def report_result(self, lottery_id, slot: str, identifier, day: Optional[date] = None) -> bool:
        """Submit an observed result. Local state is never modified."""
        if self._reporter is None:
            return False
        animal = self._resolver.resolve(identifier)
        if animal is None:
            logger.info("Report rejected: cannot resolve %r", identifier)
            return False
        return await self._reporter.report_result(lottery_id, slot, animal, day or self.now().date())


# =============================================================================
# FACTORY
# =============================================================================

def _build_cache(config: ServiceConfig) -> CacheService:
    if config.cache_dir is not None:
        return JsonFileCache(config.cache_dir)
    return InMemoryCache()


def _build_refiner(config: ServiceConfig, resolver: IdentifierResolver) -> Optional[PredictionRefiner]:
    oracle = config.oracle
    if oracle.provider == "mock":
        provider = MockProvider()
    elif oracle.provider == "gemini":
        if not oracle.api_key:
            logger.warning("Gemini oracle requested without an API key; refinement disabled")
            return None
        provider = GeminiProvider(api_key=oracle.api_key, model=oracle.model)
    else:
        return None
    return PredictionRefiner(
        provider=provider,
        resolver=resolver,
        min_predictions=oracle.min_predictions,
        params=InvocationParams(timeout_seconds=oracle.timeout_seconds),
    )


def create_service(
    config: Optional[ServiceConfig] = None,
    cache: Optional[CacheService] = None,
    fetcher: Optional[SourceFetcher] = None,
) -> AnimalitoService:
    """Wire a service from configuration."""
    config = config or ServiceConfig()
    tz = config.timezone

    def local_now() -> datetime:
        return datetime.now(tz)

    sources = SourceRegistry.load(config.acquisition.sources_path)
    timeout = config.acquisition.timeout_seconds
    if timeout is None:
        timeout = sources.timeout
    fetcher = fetcher or SourceFetcher(
        timeout=timeout,
        relays=sources.relays if config.acquisition.relays_enabled else (),
        user_agent=config.acquisition.user_agent,
    )
    resolver = IdentifierResolver(DEFAULT_REGISTRY)
    pipeline = AcquisitionPipeline(
        sources=sources,
        cache=cache or _build_cache(config),
        fetcher=fetcher,
        resolver=resolver,
        min_interval=config.acquisition.min_interval_seconds,
        timeout=timeout,
        now=local_now,
    )
    reporter = CommunityReporter(fetcher, sources.report_url)

    logger.info("Service configured: cache=%s oracle=%s",
                config.cache_dir or "memory", config.oracle.provider)
    return AnimalitoService(
        pipeline=pipeline,
        store=HistoryStore(config.engine.max_history),
        refiner=_build_refiner(config, resolver),
        reporter=reporter,
        default_predictions=config.engine.default_predictions,
        clock=local_now,
    )
