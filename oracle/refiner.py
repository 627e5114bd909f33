"""
Oracle Refinement
=================

Optional advisory pass over the statistical ranking.

GUARANTEES:
===========
1. The oracle only sees frozen candidates and history
2. Responses are schema-validated before use
3. Any failure returns the statistical ranking unchanged
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union
import logging
import re

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from prediction.engine import ConfidenceTier, PredictionResult, to_probability
from prediction.history import HistoryEntry
from prediction.resolver import IdentifierResolver

from .prompts import CanonicalPrompt
from .providers.base import InvocationParams, OracleProvider, ProviderVersion

logger = logging.getLogger(__name__)

MIN_PREDICTIONS = 3

_FENCE = re.compile(r'^\s*```(?:json)?\s*|\s*```\s*$', re.IGNORECASE)

_TIER_ALIASES = {
    'HIGH': ConfidenceTier.HIGH,
    'SEGURA': ConfidenceTier.HIGH,
    'MEDIUM': ConfidenceTier.MEDIUM,
    'MODERADA': ConfidenceTier.MEDIUM,
    'LOW': ConfidenceTier.LOW,
    'ARRIESGADA': ConfidenceTier.LOW,
}


class OraclePrediction(BaseModel):
    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    identifier: Union[str, int]
    probability: float
    confidence_tier: str = Field(alias='confidenceTier')
    rationale: str = ""


class OracleAnswer(BaseModel):
    model_config = ConfigDict(extra='ignore')
    predictions: List[OraclePrediction]


@dataclass(frozen=True)
class RefinementOutcome:
    """Final ranking plus how it was obtained."""
    predictions: Tuple[PredictionResult, ...]
    refined: bool
    fallback_reason: Optional[str] = None
    prompt_hash: Optional[str] = None
    provider_version: Optional[ProviderVersion] = None


def _tier(label: str, probability: float) -> ConfidenceTier:
    tier = _TIER_ALIASES.get(label.strip().upper())
    if tier is None:
        tier = ConfidenceTier.for_score(probability / 100)
    return tier


class PredictionRefiner:
    """Submits the statistical top-N to an oracle and validates the answer."""

    def __init__(
        self,
        provider: OracleProvider,
        resolver: Optional[IdentifierResolver] = None,
        min_predictions: int = MIN_PREDICTIONS,
        params: Optional[InvocationParams] = None,
    ):
        self._provider = provider
        self._resolver = resolver or IdentifierResolver()
        self._min_predictions = min_predictions
        self._params = params or InvocationParams()

    def refine(
        self,
        candidates: Sequence[PredictionResult],
        history: Sequence[HistoryEntry],
        lottery_name: str = "",
    ) -> RefinementOutcome:
        statistical = tuple(candidates)
        if not statistical:
            return RefinementOutcome(predictions=(), refined=False, fallback_reason="no candidates")

        prompt = CanonicalPrompt.create(statistical, history, lottery_name)
        version = self._provider.get_version()

        def fallback(reason: str) -> RefinementOutcome:
            logger.warning("Oracle refinement discarded: %s", reason)
            return RefinementOutcome(
                predictions=statistical,
                refined=False,
                fallback_reason=reason,
                prompt_hash=prompt.prompt_hash,
                provider_version=version,
            )

        try:
            response = self._provider.invoke(prompt.prompt_text, self._params)
        except Exception as e:
            return fallback(f"provider raised {type(e).__name__}: {e}")

        logger.info("Oracle %s replied in %.0f ms", version.label, response.latency_ms)
        if not response.success:
            return fallback(f"{response.error_code.value}: {response.error_message}")

        try:
            refined = self._parse(response.content)
        except (ValidationError, ValueError) as e:
            return fallback(f"invalid oracle output: {e}")

        if len(refined) < self._min_predictions:
            return fallback(f"only {len(refined)} usable predictions (need {self._min_predictions})")

        return RefinementOutcome(
            predictions=tuple(refined[:len(statistical)]),
            refined=True,
            prompt_hash=prompt.prompt_hash,
            provider_version=version,
        )

    def _parse(self, content: str) -> List[PredictionResult]:
        answer = OracleAnswer.model_validate_json(_FENCE.sub('', content))
        results = []
        seen = set()
        for row in answer.predictions:
            animal = self._resolver.resolve(row.identifier)
            if animal is None or animal.id in seen:
                continue
            seen.add(animal.id)
            probability = to_probability(min(max(row.probability, 0.0), 100.0) / 100)
            results.append(PredictionResult(
                animal=animal,
                probability=probability,
                confidence=_tier(row.confidence_tier, probability),
                rationale=row.rationale.strip() or "Refined by the scoring oracle.",
            ))
        return results
