"""
Payload Parsers

Turn raw source payloads into resolved HistoryEntry tuples.

Every inbound payload is validated at this boundary and comes out as
`Parsed(entries)` or `Invalid(reason)`. Nothing unvalidated reaches the
History Store.
"""

from __future__ import annotations
from datetime import date, datetime, timedelta
import datetime as _dt
from typing import Any, Iterable, List, Optional, Tuple, Union
import json
import logging

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from prediction.history import HistoryEntry
from prediction.registry import LotteryId
from prediction.resolver import IdentifierResolver
from prediction.schedule import GRACE_MINUTES

from .contracts import Invalid, ParseOutcome, Parsed, SourceDescriptor, SourceKind
from .extractor import HtmlResultExtractor, is_valid_slot

logger = logging.getLogger(__name__)

MIN_COMMUNITY_VOTES = 3


# =============================================================================
# WIRE SCHEMAS
# =============================================================================

class _Row(BaseModel):
    model_config = ConfigDict(extra='ignore')

    hour: Optional[str] = None
    date: Optional[_dt.date] = None

    @field_validator('hour', mode='before')
    @classmethod
    def _strip_hour(cls, value):
        return value.strip() if isinstance(value, str) else value


class ApiResult(_Row):
    animal: Optional[Union[str, int]] = None
    number: Optional[Union[str, int]] = None

    @property
    def identifier(self) -> Optional[Union[str, int]]:
        return self.animal if self.animal not in (None, "") else self.number


class ApiPayload(BaseModel):
    model_config = ConfigDict(extra='ignore')
    results: List[ApiResult]


class CommunityDraw(_Row):
    animal: Optional[Union[str, int]] = None
    verified: bool = False
    votes: int = 0

    @property
    def accepted(self) -> bool:
        return self.verified and self.votes > MIN_COMMUNITY_VOTES


class CommunityPayload(BaseModel):
    model_config = ConfigDict(extra='ignore')
    draws: List[CommunityDraw]


# =============================================================================
# PARSERS
# =============================================================================

class PayloadParser:
    """Dispatches a raw body to the parser for the source's kind."""

    def __init__(
        self,
        resolver: Optional[IdentifierResolver] = None,
        extractor: Optional[HtmlResultExtractor] = None,
    ):
        self._resolver = resolver or IdentifierResolver()
        self._extractor = extractor or HtmlResultExtractor()

    def parse(
        self,
        source: SourceDescriptor,
        body: str,
        lottery_id: LotteryId,
        now: datetime,
    ) -> ParseOutcome:
        if source.kind == SourceKind.SCRAPING:
            return self.parse_markup(body, lottery_id, now, source.name, source.pattern_set)
        today = now.date()
        if source.kind == SourceKind.COMMUNITY:
            return self.parse_community(body, today, source.name)
        return self.parse_api(body, today, source.name)

    def parse_api(self, body: Union[str, dict], today: date, source_name: str = "") -> ParseOutcome:
        payload = _validate(ApiPayload, body)
        if isinstance(payload, Invalid):
            return payload
        rows = (
            (r.date or today, r.hour, r.identifier)
            for r in payload.results
        )
        return self._resolve_rows(rows, source_name)

    def parse_community(self, body: Union[str, dict], today: date, source_name: str = "") -> ParseOutcome:
        payload = _validate(CommunityPayload, body)
        if isinstance(payload, Invalid):
            return payload
        accepted = [d for d in payload.draws if d.accepted]
        rejected = len(payload.draws) - len(accepted)
        if rejected:
            logger.debug("Ignored %d unverified community draws", rejected)
        rows = ((d.date or today, d.hour, d.animal) for d in accepted)
        return self._resolve_rows(rows, source_name)

    def parse_markup(
        self,
        markup: str,
        lottery_id: LotteryId,
        now: datetime,
        source_name: str = "",
        preferred: Optional[str] = None,
    ) -> ParseOutcome:
        """
        Markup carries no dates. A pair is dated today unless its slot is
        still ahead of `now` (plus grace), in which case the page is still
        showing yesterday's slate for that slot.
        """
        pairs = self._extractor.extract(markup, lottery_id, preferred=preferred)
        if not pairs:
            return Invalid("no recognizable results in markup")
        return self._resolve_rows(((_draw_day(slot, now), slot, text) for slot, text in pairs), source_name)

    def _resolve_rows(
        self,
        rows: Iterable[Tuple[date, Optional[str], Any]],
        source_name: str,
    ) -> ParseOutcome:
        entries = []
        dropped = 0
        for day, slot, identifier in rows:
            animal = self._resolver.resolve(identifier)
            if animal is None or not is_valid_slot(slot):
                dropped += 1
                logger.debug("Dropped unresolvable row %s %r from %s", slot, identifier, source_name)
                continue
            entries.append(HistoryEntry(
                date=day,
                slot=slot,
                animal=animal,
                raw_text=str(identifier),
                source=source_name,
            ))
        return Parsed(entries=tuple(entries), dropped=dropped)


def _draw_day(slot: Optional[str], now: datetime) -> date:
    if not is_valid_slot(slot):
        return now.date()
    hours, minutes = slot.split(':')
    if int(hours) * 60 + int(minutes) > now.hour * 60 + now.minute + GRACE_MINUTES:
        return now.date() - timedelta(days=1)
    return now.date()


def _validate(model, body: Union[str, dict]):
    try:
        if isinstance(body, str):
            return model.model_validate_json(body)
        return model.model_validate(body)
    except ValidationError as e:
        return Invalid(f"schema validation failed: {e.error_count()} error(s)")
    except (ValueError, TypeError) as e:
        return Invalid(f"malformed payload: {e}")


def entries_from_payload(payload: Any, resolver: IdentifierResolver) -> Tuple[HistoryEntry, ...]:
    """Rebuild entries from a cached payload; unknown rows are skipped."""
    entries = []
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError:
            return ()
    if not isinstance(payload, dict):
        return ()
    for row in payload.get('entries', []):
        try:
            day = date.fromisoformat(row['date'])
            animal = resolver.resolve(row.get('code'))
            slot = row['slot']
        except (KeyError, TypeError, ValueError):
            continue
        if animal is None:
            continue
        entries.append(HistoryEntry(
            date=day,
            slot=slot,
            animal=animal,
            raw_text=row.get('raw_text', ''),
            source=row.get('source', ''),
        ))
    return tuple(entries)
