"""
Prediction Engine

Scores every registry entry from a frozen history snapshot.

SCORING:
========
    score(a) = ALPHA * f(a) + BETA * t(a) + GAMMA * m(a)

f: global frequency over the snapshot
t: weighted frequency over short/medium/long windows
m: first-order Markov transition from the most recent result
   (falls back to f when no transition can be observed)

The engine never raises. Empty history yields no predictions.
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
import math

from .history import HistoryEntry, MAX_HISTORY
from .registry import Animal, AnimalRegistry, DEFAULT_REGISTRY


ALPHA = 0.25
BETA = 0.45
GAMMA = 0.30

HIGH_THRESHOLD = 0.09
MEDIUM_THRESHOLD = 0.05


@dataclass(frozen=True)
class TrendWindow:
    size: int
    weight: float


TREND_WINDOWS: Tuple[TrendWindow, ...] = (
    TrendWindow(size=20, weight=0.40),
    TrendWindow(size=60, weight=0.35),
    TrendWindow(size=120, weight=0.25),
)


class ConfidenceTier(Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @classmethod
    def for_score(cls, score: float) -> 'ConfidenceTier':
        if score > HIGH_THRESHOLD:
            return cls.HIGH
        if score > MEDIUM_THRESHOLD:
            return cls.MEDIUM
        return cls.LOW


@dataclass(frozen=True)
class PredictionResult:
    """One ranked prediction. Never mutated."""
    animal: Animal
    probability: float
    confidence: ConfidenceTier
    rationale: str

    def to_dict(self) -> dict:
        return {
            'code': self.animal.code,
            'name': self.animal.display_name,
            'glyph': self.animal.glyph,
            'probability': self.probability,
            'confidence': self.confidence.value,
            'rationale': self.rationale,
        }


@dataclass(frozen=True)
class EngineStatistics:
    """Precomputed per-animal statistics, keyed by animal id."""
    frequency: Dict[str, float]
    trend: Dict[str, float]
    markov: Optional[Dict[str, float]]

    def transition(self, animal_id: str) -> float:
        """m(a), or f(a) when the Markov model is undefined."""
        if self.markov is None:
            return self.frequency.get(animal_id, 0.0)
        return self.markov.get(animal_id, 0.0)


def to_probability(score: float) -> float:
    """round(score * 1000) / 10 with half-up rounding."""
    return math.floor(score * 1000 + 0.5) / 10


def build_rationale(f: float, t: float, m: float, has_markov: bool) -> str:
    """Short descriptive explanation. Not used for ranking."""
    if t > f and m > 0.12:
        return "Strong transition from the last result backed by a rising trend."
    if t > f:
        return "Trend exceeds historical frequency in the recent windows."
    if has_markov and m > 0.1:
        return "Strong transition correlation with the last result."
    if f > 0.06:
        return "High historical frequency across the tracked draws."
    return "Stable baseline metric from the hybrid model."


class PredictionEngine:
    """
    Frequency/trend/Markov engine over an immutable snapshot.

    Statistics are computed once at construction and reused by every
    call to `top_predictions`.
    """

    def __init__(
        self,
        history: Sequence[HistoryEntry],
        registry: AnimalRegistry = DEFAULT_REGISTRY,
        max_history: int = MAX_HISTORY,
    ):
        self._registry = registry
        self._history: Tuple[HistoryEntry, ...] = tuple(
            e for e in tuple(history)[:max_history]
            if e.animal is not None and e.animal in registry
        )
        self._stats = self._precompute() if self._history else None

    @property
    def history(self) -> Tuple[HistoryEntry, ...]:
        return self._history

    @property
    def statistics(self) -> Optional[EngineStatistics]:
        return self._stats

    def _ids(self) -> List[str]:
        return [e.animal.id for e in self._history]

    def _precompute(self) -> EngineStatistics:
        ids = self._ids()
        return EngineStatistics(
            frequency=self._global_frequency(ids),
            trend=self._trend_scores(ids),
            markov=self._markov_probabilities(ids),
        )

    def _global_frequency(self, ids: List[str]) -> Dict[str, float]:
        counts = Counter(ids)
        total = len(ids)
        return {a.id: counts.get(a.id, 0) / total for a in self._registry}

    def _trend_scores(self, ids: List[str]) -> Dict[str, float]:
        scores = {a.id: 0.0 for a in self._registry}
        for window in TREND_WINDOWS:
            sample = ids[:window.size]
            counts = Counter(sample)
            total = len(sample)
            for animal_id in scores:
                scores[animal_id] += (counts.get(animal_id, 0) / total) * window.weight
        return scores

    def _markov_probabilities(self, ids: List[str]) -> Optional[Dict[str, float]]:
        if len(ids) < 2:
            return None

        last = ids[0]
        transitions: Counter = Counter()
        # ids is newest-first: ids[i + 1] happened right before ids[i]
        for i in range(len(ids) - 2, -1, -1):
            if ids[i + 1] == last:
                transitions[ids[i]] += 1

        total = sum(transitions.values())
        if total == 0:
            return None
        return {a.id: transitions.get(a.id, 0) / total for a in self._registry}

    def score(self, animal: Animal) -> float:
        """Composite score of a single entry (0.0 on empty history)."""
        if self._stats is None:
            return 0.0
        f = self._stats.frequency.get(animal.id, 0.0)
        t = self._stats.trend.get(animal.id, 0.0)
        m = self._stats.transition(animal.id)
        return ALPHA * f + BETA * t + GAMMA * m

    def top_predictions(self, n: int = 5) -> List[PredictionResult]:
        """All entries scored, ranked descending, truncated to n."""
        if self._stats is None or n <= 0:
            return []

        stats = self._stats
        has_markov = stats.markov is not None
        scored = []
        for animal in self._registry:
            f = stats.frequency.get(animal.id, 0.0)
            t = stats.trend.get(animal.id, 0.0)
            m = stats.transition(animal.id)
            score = ALPHA * f + BETA * t + GAMMA * m
            scored.append((score, animal, f, t, m))

        # stable sort keeps registry order on ties
        scored.sort(key=lambda item: -item[0])

        return [
            PredictionResult(
                animal=animal,
                probability=to_probability(score),
                confidence=ConfidenceTier.for_score(score),
                rationale=build_rationale(f, t, m, has_markov),
            )
            for score, animal, f, t, m in scored[:n]
        ]
