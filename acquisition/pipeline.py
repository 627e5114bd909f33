"""
Acquisition Pipeline

Resolves "give me results for (lottery, kind)" against the source chain.

POLICY (strictly ordered):
==========================
1. Respect the minimum delay since the last outbound call
2. Fresh cache hit → return it
3. Try active sources by priority; first non-empty parse wins
4. Every source failed → stale cache
5. No cache at all → deterministic synthetic data

The public contract never fails: `acquire` always returns a ResultSet and
its provenance says how much to trust it.
"""

from __future__ import annotations
from dataclasses import replace
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional, Tuple
import asyncio
import logging
import time

from prediction.history import HistoryEntry
from prediction.registry import LotteryId, parse_lottery_id
from prediction.resolver import IdentifierResolver

from .cache import CacheEntry, CacheService, cache_key
from .contracts import (
    FetchResult, FetchStatus, Invalid, Provenance, RequestKind, ResultSet, SourceDescriptor,
)
from .fetcher import SourceFetcher
from .parsers import PayloadParser, entries_from_payload
from .sources import SourceRegistry
from .synthetic import SyntheticGenerator

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_request_kind(value) -> RequestKind:
    if isinstance(value, RequestKind):
        return value
    return RequestKind(str(value).lower())


class AcquisitionPipeline:
    """
    Orchestrates the source chain for one client.

    All collaborators are injected so tests can substitute the cache,
    transport, clock and sleeper.
    """

    def __init__(
        self,
        sources: SourceRegistry,
        cache: CacheService,
        fetcher: Optional[SourceFetcher] = None,
        parser: Optional[PayloadParser] = None,
        synthetic: Optional[SyntheticGenerator] = None,
        resolver: Optional[IdentifierResolver] = None,
        min_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
        now: Callable[[], datetime] = datetime.now,
    ):
        self._sources = sources
        self._cache = cache
        self._timeout = timeout if timeout is not None else sources.timeout
        self._fetcher = fetcher or SourceFetcher(timeout=self._timeout, relays=sources.relays)
        self._resolver = resolver or IdentifierResolver()
        self._parser = parser or PayloadParser(resolver=self._resolver)
        self._synthetic = synthetic or SyntheticGenerator(self._resolver.registry)
        self._min_interval = min_interval if min_interval is not None else sources.min_interval
        self._clock = clock
        self._sleep = sleep
        self._now = now
        self._last_request: Optional[float] = None
        self._last_by_source: Dict[str, float] = {}

    @property
    def sources(self) -> SourceRegistry:
        return self._sources

    @property
    def cache(self) -> CacheService:
        return self._cache

    async def acquire(self, lottery_id, kind=RequestKind.TODAY) -> ResultSet:
        """Total function: always returns a well-formed ResultSet."""
        lottery = parse_lottery_id(lottery_id)
        request_kind = parse_request_kind(kind)
        try:
            return await self._acquire(lottery, request_kind)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Acquisition failed unexpectedly for %s/%s", lottery.value, request_kind.value)
            return self._synthetic_result(lottery, request_kind, ())

    # =========================================================================
    # POLICY
    # =========================================================================

    async def _acquire(self, lottery: LotteryId, kind: RequestKind) -> ResultSet:
        await self._wait(self._last_request, self._min_interval)

        key = cache_key(lottery.value, kind.value)
        fresh = self._cache.get_fresh(key)
        if fresh is not None:
            cached = self._from_cache(lottery, kind, fresh, Provenance.CACHED)
            if cached is not None:
                logger.info("Serving cached %s/%s", lottery.value, kind.value)
                return cached

        attempts = []
        for source in self._sources.chain(lottery, kind):
            logger.info("Trying %s for %s/%s", source.name, lottery.value, kind.value)
            result, entries = await self._attempt(source, lottery, kind)
            attempts.append(result)

            if entries:
                logger.info("Success with %s: %d results", source.name, len(entries))
                fetched_at = _utcnow()
                try:
                    self._cache.set(
                        key,
                        self._payload(entries, source, fetched_at),
                        self._sources.ttl_for(source.kind)
                    )
                except Exception:
                    logger.exception("Cache write-through failed for %s; serving live data uncached", key)
                return ResultSet(
                    lottery_id=lottery,
                    kind=kind,
                    entries=entries,
                    provenance=Provenance.LIVE,
                    sources=(source.name,),
                    fetched_at=fetched_at,
                    attempts=tuple(attempts),
                )

            logger.warning("%s failed: %s %s", source.name, result.status.value, result.error_message or "")

        stale = self._cache.get(key)
        if stale is not None:
            result_set = self._from_cache(lottery, kind, stale, Provenance.STALE, tuple(attempts))
            if result_set is not None:
                logger.warning("All sources failed for %s/%s; serving stale cache", lottery.value, kind.value)
                return result_set

        logger.warning("No data for %s/%s; falling back to synthetic results", lottery.value, kind.value)
        return self._synthetic_result(lottery, kind, tuple(attempts))

    async def _attempt(
        self,
        source: SourceDescriptor,
        lottery: LotteryId,
        kind: RequestKind,
    ) -> Tuple[FetchResult, Tuple[HistoryEntry, ...]]:
        if source.min_interval is not None:
            await self._wait(self._last_by_source.get(source.name), source.min_interval)

        url = source.endpoint_for(kind)
        stamp = self._clock()
        self._last_request = stamp
        self._last_by_source[source.name] = stamp

        # the fetcher bounds each relay and the direct URL separately
        budget = self._timeout * (len(self._sources.relays) + 1)
        attempted_at = _utcnow()
        try:
            result, raw = await asyncio.wait_for(self._fetcher.fetch(source, url), timeout=budget)
        except asyncio.TimeoutError:
            return FetchResult(
                source_name=source.name,
                url=url,
                attempted_at=attempted_at,
                completed_at=_utcnow(),
                status=FetchStatus.TIMEOUT,
                error_message=f"No response within {budget}s",
            ), ()

        if raw is None:
            return result, ()

        try:
            outcome = self._parser.parse(source, raw.text, lottery, self._now())
        except Exception as e:
            logger.exception("Parser crashed on %s", source.name)
            outcome = Invalid(f"parser error: {e}")

        if isinstance(outcome, Invalid):
            return replace(result, status=FetchStatus.PARSE_ERROR, error_message=outcome.reason), ()

        if not outcome.entries:
            return replace(
                result,
                status=FetchStatus.EMPTY,
                error_message=f"no resolvable entries ({outcome.dropped} dropped)",
            ), ()

        return replace(result, entries_count=len(outcome.entries)), outcome.entries

    async def _wait(self, last: Optional[float], interval: float) -> None:
        if last is None or interval <= 0:
            return
        remaining = interval - (self._clock() - last)
        if remaining > 0:
            logger.debug("Rate limited; sleeping %.2fs", remaining)
            await self._sleep(remaining)

    # =========================================================================
    # CACHE / FALLBACK HELPERS
    # =========================================================================

    @staticmethod
    def _payload(entries, source: SourceDescriptor, fetched_at: datetime) -> dict:
        return {
            'entries': [e.to_dict() for e in entries],
            'sources': [source.name],
            'fetched_at': fetched_at.isoformat(),
        }

    def _from_cache(
        self,
        lottery: LotteryId,
        kind: RequestKind,
        entry: CacheEntry,
        provenance: Provenance,
        attempts: Tuple[FetchResult, ...] = (),
    ) -> Optional[ResultSet]:
        entries = entries_from_payload(entry.payload, self._resolver)
        if not entries:
            return None
        payload = entry.payload if isinstance(entry.payload, dict) else {}
        fetched_at = None
        if payload.get('fetched_at'):
            try:
                fetched_at = datetime.fromisoformat(payload['fetched_at'])
            except (TypeError, ValueError):
                fetched_at = None
        return ResultSet(
            lottery_id=lottery,
            kind=kind,
            entries=entries,
            provenance=provenance,
            sources=tuple(payload.get('sources') or ()),
            fetched_at=fetched_at,
            attempts=attempts,
        )

    def _synthetic_result(
        self,
        lottery: LotteryId,
        kind: RequestKind,
        attempts: Tuple[FetchResult, ...],
    ) -> ResultSet:
        now = self._now()
        if kind == RequestKind.HISTORY:
            entries = self._synthetic.history(lottery, now)
        else:
            entries = self._synthetic.today(lottery, now)
        return ResultSet(
            lottery_id=lottery,
            kind=kind,
            entries=entries,
            provenance=Provenance.SYNTHETIC,
            sources=("synthetic",),
            fetched_at=_utcnow(),
            attempts=attempts,
        )
