"""
Oracle Providers Package
========================

Available providers:
- MockProvider: Deterministic mock for testing
- GeminiProvider: Gemini REST API over httpx
"""

from .base import (
    OracleProvider,
    ProviderVersion,
    ProviderResponse,
    ProviderErrorCode,
    InvocationParams,
)
from .mock import MockProvider
from .gemini import GeminiProvider

__all__ = [
    'OracleProvider',
    'ProviderVersion',
    'ProviderResponse',
    'ProviderErrorCode',
    'InvocationParams',
    'MockProvider',
    'GeminiProvider',
]
