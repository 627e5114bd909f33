"""
Shared builders for history snapshots and result sets.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Tuple

from acquisition.contracts import Provenance, RequestKind, ResultSet
from prediction.history import HistoryEntry
from prediction.registry import DEFAULT_REGISTRY, LotteryId, slots_for

NEWEST_DAY = date(2024, 3, 1)


def history_of(
    codes: Iterable[str],
    lottery: LotteryId = LotteryId.LOTTO_ACTIVO,
    newest: date = NEWEST_DAY,
    source: str = "fixture",
) -> Tuple[HistoryEntry, ...]:
    """
    Newest-first entries for the given codes.

    The first code lands on the last slot of `newest`; each following
    code goes one slot further back, crossing into earlier days.
    """
    slots = slots_for(lottery)
    entries = []
    day = newest
    index = len(slots) - 1
    for code in codes:
        entries.append(HistoryEntry(
            date=day,
            slot=slots[index].time,
            animal=DEFAULT_REGISTRY.by_code(code),
            raw_text=code,
            source=source,
        ))
        index -= 1
        if index < 0:
            index = len(slots) - 1
            day -= timedelta(days=1)
    return tuple(entries)


def day_results(day: date, pairs, source: str = "fixture") -> Tuple[HistoryEntry, ...]:
    """Entries for one day from (slot, code) pairs."""
    return tuple(
        HistoryEntry(date=day, slot=slot, animal=DEFAULT_REGISTRY.by_code(code), raw_text=code, source=source)
        for slot, code in pairs
    )


def result_set(
    entries,
    kind: RequestKind = RequestKind.TODAY,
    provenance: Provenance = Provenance.LIVE,
    lottery: LotteryId = LotteryId.LOTTO_ACTIVO,
) -> ResultSet:
    return ResultSet(
        lottery_id=lottery,
        kind=kind,
        entries=tuple(entries),
        provenance=provenance,
        sources=("fixture",),
        fetched_at=datetime(2024, 3, 1, 16, 0, tzinfo=timezone.utc),
    )
