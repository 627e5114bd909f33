"""
History Store

Bounded, newest-first collection of past draw outcomes per lottery variant.

GUARANTEES:
===========
1. Entries are immutable once created
2. At most `max_entries` per lottery; oldest evicted first
3. One entry per (date, slot); the newer write wins
4. Readers only ever receive a snapshot tuple
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from datetime import date
from typing import Deque, Dict, Iterable, Optional, Tuple
import logging
import threading

from .registry import Animal, LotteryId, parse_lottery_id

logger = logging.getLogger(__name__)

MAX_HISTORY = 200


@dataclass(frozen=True)
class HistoryEntry:
    """A single past draw outcome."""
    date: date
    slot: str
    animal: Optional[Animal]
    raw_text: str = ""
    source: str = ""

    @property
    def is_resolved(self) -> bool:
        return self.animal is not None

    @property
    def sort_key(self) -> Tuple[date, str]:
        return (self.date, self.slot)

    def to_dict(self) -> dict:
        return {
            'date': self.date.isoformat(),
            'slot': self.slot,
            'code': self.animal.code if self.animal else None,
            'raw_text': self.raw_text,
            'source': self.source,
        }


class HistoryStore:
    """
    Per-lottery bounded history.

    The version counter increments on every change so that consumers can
    memoize derived values (predictions) against it.
    """

    def __init__(self, max_entries: int = MAX_HISTORY):
        self._max_entries = max_entries
        self._entries: Dict[LotteryId, Deque[HistoryEntry]] = {}
        self._versions: Dict[LotteryId, int] = {}
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def merge(self, lottery_id, entries: Iterable[HistoryEntry]) -> int:
        """
        Merge entries into a lottery's history.

        Unresolved entries are dropped. Returns the number of entries
        that were new or replaced an existing (date, slot).
        """
        lottery = parse_lottery_id(lottery_id)
        incoming = [e for e in entries if e.is_resolved]
        if not incoming:
            return 0

        with self._lock:
            current = self._entries.get(lottery, deque())
            by_key = {e.sort_key: e for e in current}
            changed = 0
            for entry in incoming:
                existing = by_key.get(entry.sort_key)
                if existing != entry:
                    by_key[entry.sort_key] = entry
                    changed += 1

            if not changed:
                return 0

            ordered = sorted(by_key.values(), key=lambda e: e.sort_key, reverse=True)
            evicted = len(ordered) - self._max_entries
            if evicted > 0:
                logger.debug("Evicting %d oldest entries for %s", evicted, lottery.value)
            self._entries[lottery] = deque(ordered[:self._max_entries], maxlen=self._max_entries)
            self._versions[lottery] = self._versions.get(lottery, 0) + 1
            return changed

    def snapshot(self, lottery_id) -> Tuple[HistoryEntry, ...]:
        """Immutable newest-first view."""
        lottery = parse_lottery_id(lottery_id)
        with self._lock:
            return tuple(self._entries.get(lottery, ()))

    def version(self, lottery_id) -> int:
        return self._versions.get(parse_lottery_id(lottery_id), 0)

    def for_date(self, lottery_id, day: date) -> Tuple[HistoryEntry, ...]:
        """Entries for a single calendar day, ascending by slot."""
        return tuple(sorted(
            (e for e in self.snapshot(lottery_id) if e.date == day),
            key=lambda e: e.slot
        ))

    def clear(self, lottery_id) -> None:
        lottery = parse_lottery_id(lottery_id)
        with self._lock:
            if self._entries.pop(lottery, None):
                self._versions[lottery] = self._versions.get(lottery, 0) + 1

    def __len__(self) -> int:
        return sum(len(d) for d in self._entries.values())
