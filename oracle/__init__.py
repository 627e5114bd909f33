"""
Oracle Refinement Layer
=======================

Strictly advisory. The statistical ranking is always available as the
fallback; the oracle can reorder or re-label it, never replace it with
nothing.
"""

from .prompts import CanonicalPrompt
from .refiner import OracleAnswer, PredictionRefiner, RefinementOutcome
from .providers import (
    GeminiProvider,
    InvocationParams,
    MockProvider,
    OracleProvider,
    ProviderErrorCode,
    ProviderResponse,
    ProviderVersion,
)

__all__ = [
    'CanonicalPrompt',
    'OracleAnswer',
    'PredictionRefiner',
    'RefinementOutcome',
    'GeminiProvider',
    'InvocationParams',
    'MockProvider',
    'OracleProvider',
    'ProviderErrorCode',
    'ProviderResponse',
    'ProviderVersion',
]
