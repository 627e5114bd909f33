"""
Prediction Layer

RESPONSIBILITY: Registry, identifier resolution, bounded history,
statistical scoring and the draw schedule.
ALLOWED INPUTS: HistoryEntry snapshots, wall-clock time
OUTPUTS: PredictionResult, SlotStatus

WHAT THIS LAYER MUST NOT DO:
============================
- Perform network I/O
- Mutate a snapshot it was handed
- Raise on empty or partially unresolved history
"""

from .registry import (
    Animal, AnimalRegistry, DrawSlot, LotteryId,
    ANIMALS, DEFAULT_REGISTRY, LOTTERY_SCHEDULES,
    parse_lottery_id, slots_for,
)
from .resolver import IdentifierResolver, normalize_name, resolve, strip_accents
from .history import HistoryEntry, HistoryStore, MAX_HISTORY
from .engine import (
    ConfidenceTier, EngineStatistics, PredictionEngine, PredictionResult,
    TREND_WINDOWS, to_probability,
)
from .schedule import SlotStatus, countdown, next_slot, schedule

__all__ = [
    'Animal', 'AnimalRegistry', 'DrawSlot', 'LotteryId',
    'ANIMALS', 'DEFAULT_REGISTRY', 'LOTTERY_SCHEDULES',
    'parse_lottery_id', 'slots_for',
    'IdentifierResolver', 'normalize_name', 'resolve', 'strip_accents',
    'HistoryEntry', 'HistoryStore', 'MAX_HISTORY',
    'ConfidenceTier', 'EngineStatistics', 'PredictionEngine', 'PredictionResult',
    'TREND_WINDOWS', 'to_probability',
    'SlotStatus', 'countdown', 'next_slot', 'schedule',
]
