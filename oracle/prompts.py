"""
Canonical Prompt Generation
===========================

Pure functions from (candidates, history) to prompt text.

INVARIANT: Same candidates + same history → same prompt_hash
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence
import hashlib

from prediction.engine import PredictionResult
from prediction.history import HistoryEntry

RECENT_HISTORY = 20


@dataclass(frozen=True)
class CanonicalPrompt:
    """Frozen prompt with hash for traceability."""
    prompt_text: str
    prompt_hash: str
    candidate_count: int

    @staticmethod
    def create(
        candidates: Sequence[PredictionResult],
        history: Sequence[HistoryEntry],
        lottery_name: str = "",
        recent: int = RECENT_HISTORY,
    ) -> 'CanonicalPrompt':
        """The ONLY way to create prompts."""
        text = render(candidates, history, lottery_name, recent)
        return CanonicalPrompt(
            prompt_text=text,
            prompt_hash=hashlib.sha256(text.encode('utf-8')).hexdigest(),
            candidate_count=len(candidates),
        )


def render(
    candidates: Sequence[PredictionResult],
    history: Sequence[HistoryEntry],
    lottery_name: str,
    recent: int,
) -> str:
    lines = [
        f"You are refining predictions for the {lottery_name or 'animalito'} lottery.",
        "Candidates ranked by a frequency/trend/Markov model:",
    ]
    for c in candidates:
        lines.append(
            f"- #{c.animal.code} {c.animal.display_name}: "
            f"{c.probability:.1f} ({c.confidence.value}) {c.rationale}"
        )

    lines.append(f"Most recent results, newest first (up to {recent}):")
    shown = [e for e in history if e.animal is not None][:recent]
    if shown:
        for e in shown:
            lines.append(f"  {e.date.isoformat()} {e.slot} #{e.animal.code} {e.animal.display_name}")
    else:
        lines.append("  (none)")

    lines.extend([
        "Re-rank the candidates using only the data above.",
        "Answer with JSON only: {\"predictions\": [{\"identifier\": \"<two-digit number>\", "
        "\"probability\": <0-100>, \"confidenceTier\": \"HIGH|MEDIUM|LOW\", \"rationale\": \"<short>\"}]}",
    ])
    return "\n".join(lines)
