"""
Synthetic Result Generator

Deterministic stand-in data used when no real or cached result exists.

Output has the right shape (real slot times, registry animals) so that
downstream components always receive a well-formed collection. It is never
real data: every entry is tagged with SYNTHETIC_SOURCE and the pipeline marks
the ResultSet provenance as synthetic.
"""

from __future__ import annotations
from datetime import date, datetime, timedelta
from typing import List, Tuple
import hashlib

from prediction.history import HistoryEntry, MAX_HISTORY
from prediction.registry import AnimalRegistry, DEFAULT_REGISTRY, DrawSlot, parse_lottery_id, slots_for

SYNTHETIC_SOURCE = "synthetic"


class SyntheticGenerator:
    """
    Same (lottery, date, slot) always yields the same animal.

    The animal is picked from a SHA-256 digest of the key, so results do
    not depend on interpreter hash seeds or call order.
    """

    def __init__(self, registry: AnimalRegistry = DEFAULT_REGISTRY):
        self._registry = registry
        self._animals = tuple(registry)

    def entry(self, lottery_id, day: date, slot: DrawSlot) -> HistoryEntry:
        lottery = parse_lottery_id(lottery_id)
        seed = f"{lottery.value}|{day.isoformat()}|{slot.time}"
        digest = hashlib.sha256(seed.encode('utf-8')).digest()
        animal = self._animals[int.from_bytes(digest[:8], 'big') % len(self._animals)]
        return HistoryEntry(
            date=day,
            slot=slot.time,
            animal=animal,
            raw_text=animal.code,
            source=SYNTHETIC_SOURCE,
        )

    def today(self, lottery_id, now: datetime) -> Tuple[HistoryEntry, ...]:
        """
        Slots already drawn today, ascending.

        Before the first slot of the day, yesterday's full slate is
        returned instead so that the result is never empty.
        """
        slots = slots_for(lottery_id)
        current = now.hour * 60 + now.minute
        drawn = [s for s in slots if s.minutes <= current]
        day = now.date()
        if not drawn:
            drawn = list(slots)
            day = day - timedelta(days=1)
        return tuple(self.entry(lottery_id, day, s) for s in drawn)

    def history(self, lottery_id, now: datetime, count: int = MAX_HISTORY) -> Tuple[HistoryEntry, ...]:
        """`count` entries, newest-first, walking back from the last drawn slot."""
        slots = slots_for(lottery_id)
        current = now.hour * 60 + now.minute
        day = now.date()
        entries: List[HistoryEntry] = []

        pending = [s for s in slots if s.minutes <= current]
        while len(entries) < count:
            for slot in reversed(pending):
                entries.append(self.entry(lottery_id, day, slot))
                if len(entries) >= count:
                    break
            day = day - timedelta(days=1)
            pending = list(slots)
        return tuple(entries)
