"""
Mock Oracle Provider
====================

Deterministic provider for tests and offline runs.

GUARANTEES:
- Same (prompt, seed) → identical response
- Explicit failure modes can be triggered
- No network access
"""

from __future__ import annotations
from typing import Optional
import hashlib
import json
import re
import time

from .base import (
    InvocationParams, OracleProvider, ProviderErrorCode, ProviderResponse, ProviderVersion, elapsed_ms,
)

_CANDIDATE = re.compile(r'^- #(\d{2}) ', re.MULTILINE)


class MockProvider(OracleProvider):
    """
    Echoes the prompt's candidates back as a well-formed oracle answer.

    Probabilities are derived from hash(prompt + seed). A fixed `content`
    string overrides generation (useful for malformed-response tests).
    """

    def __init__(
        self,
        failure_mode: Optional[ProviderErrorCode] = None,
        content: Optional[str] = None,
        max_predictions: int = 5,
    ):
        self._failure_mode = failure_mode
        self._content = content
        self._max_predictions = max_predictions
        self._calls = 0
        self._version = ProviderVersion(provider_id="mock", model_id="mock-deterministic-v1")

    @property
    def calls(self) -> int:
        return self._calls

    def get_version(self) -> ProviderVersion:
        return self._version

    def invoke(self, prompt: str, params: InvocationParams) -> ProviderResponse:
        self._calls += 1
        started = time.monotonic()

        if self._failure_mode is not None:
            return ProviderResponse.failed(
                self._failure_mode,
                f"Mock provider configured to fail: {self._failure_mode.value}",
                started,
            )

        content = self._content
        if content is None:
            content = self._generate_deterministic_response(prompt, params.seed)
        return ProviderResponse(content=content, latency_ms=elapsed_ms(started))

    def _generate_deterministic_response(self, prompt: str, seed: int) -> str:
        codes = _CANDIDATE.findall(prompt)[:self._max_predictions]
        predictions = []
        for rank, code in enumerate(codes):
            digest = hashlib.sha256(f"{prompt}|{seed}|{code}".encode()).digest()
            jitter = digest[0] / 255 * 5
            predictions.append({
                "identifier": code,
                "probability": round(max(1.0, 40.0 - rank * 6 + jitter), 1),
                "confidenceTier": "HIGH" if rank == 0 else ("MEDIUM" if rank < 3 else "LOW"),
                "rationale": "Consistent with the statistical ranking.",
            })
        return json.dumps({"predictions": predictions}, sort_keys=True)
