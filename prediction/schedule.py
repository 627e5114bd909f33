"""
Schedule / Countdown Calculator

Pure functions of (slots, known results, wall clock). No I/O.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from .history import HistoryEntry
from .registry import Animal, DrawSlot

GRACE_MINUTES = 5


@dataclass(frozen=True)
class SlotStatus:
    slot: DrawSlot
    animal: Optional[Animal]
    is_completed: bool
    is_next: bool

    @property
    def time(self) -> str:
        return self.slot.time

    def to_dict(self) -> dict:
        return {
            'time': self.slot.time,
            'label': self.slot.label,
            'code': self.animal.code if self.animal else None,
            'name': self.animal.display_name if self.animal else None,
            'is_completed': self.is_completed,
            'is_next': self.is_next,
        }


def _minute_of_day(now: datetime) -> float:
    return now.hour * 60 + now.minute + now.second / 60


def schedule(
    slots: Sequence[DrawSlot],
    known_results: Iterable[HistoryEntry],
    now: datetime,
    grace_minutes: int = GRACE_MINUTES,
) -> List[SlotStatus]:
    """
    Per-slot completion and next-slot status.

    A slot is completed once `now` passes its time plus the grace buffer,
    or as soon as a result is known for it. The next slot is the earliest
    incomplete slot whose time is still in the future.
    """
    known = {}
    for entry in known_results:
        if entry.animal is not None:
            known.setdefault(entry.slot, entry.animal)

    current = _minute_of_day(now)
    statuses = []
    next_assigned = False
    for slot in slots:
        animal = known.get(slot.time)
        completed = current >= slot.minutes + grace_minutes or animal is not None
        is_next = False
        if not completed and not next_assigned and slot.minutes > current:
            is_next = True
            next_assigned = True
        statuses.append(SlotStatus(slot=slot, animal=animal, is_completed=completed, is_next=is_next))
    return statuses


def next_slot(slots: Sequence[DrawSlot], now: datetime) -> Optional[DrawSlot]:
    """Earliest slot still in the future today, if any."""
    current = _minute_of_day(now)
    for slot in slots:
        if slot.minutes > current:
            return slot
    return None


def countdown(slots: Sequence[DrawSlot], now: datetime) -> str:
    """
    Time remaining until the next slot.

    '2h 15m' while at least an hour remains, '14m 30s' otherwise,
    'Tomorrow 9:00 AM' once today's slots are exhausted.
    """
    if not slots:
        return ""
    upcoming = next_slot(slots, now)
    if upcoming is None:
        return f"Tomorrow {slots[0].label}"

    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    target = midnight + timedelta(minutes=upcoming.minutes)
    remaining = int((target - now).total_seconds())
    hours, rest = divmod(remaining, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m {seconds}s"
