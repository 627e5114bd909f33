"""
Scoring Oracle Providers
========================

A provider sends the canonical prompt to one model and hands back the raw
answer text. Parsing and validation belong to the refiner.

CONTRACT:
- `invoke` never raises; failures come back as a reply with an error code
- Every reply records how long the call took
- `get_version` names the model that answered, for display next to
  refined predictions
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import time


class ProviderErrorCode(Enum):
    """Why an oracle call produced no usable text."""
    NOT_CONFIGURED = "not_configured"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    RATE_LIMITED = "rate_limited"
    API_ERROR = "api_error"
    INVALID_RESPONSE = "invalid_response"
    CONTENT_FILTERED = "content_filtered"


@dataclass(frozen=True)
class ProviderVersion:
    provider_id: str       # "gemini" | "mock"
    model_id: str

    @property
    def label(self) -> str:
        return f"{self.provider_id}/{self.model_id}"


@dataclass(frozen=True)
class ProviderResponse:
    """
    Raw answer text, or the reason there is none.

    Exactly one of `content` and `error_code` is set.
    """
    content: Optional[str] = None
    error_code: Optional[ProviderErrorCode] = None
    error_message: Optional[str] = None
    latency_ms: float = 0.0

    def __post_init__(self):
        if (self.content is None) == (self.error_code is None):
            raise ValueError("A reply carries either content or an error code")

    @property
    def success(self) -> bool:
        return self.error_code is None

    @classmethod
    def failed(cls, code: ProviderErrorCode, message: str, started: Optional[float] = None) -> 'ProviderResponse':
        return cls(error_code=code, error_message=message, latency_ms=elapsed_ms(started))


def elapsed_ms(started: Optional[float]) -> float:
    if started is None:
        return 0.0
    return (time.monotonic() - started) * 1000


@dataclass(frozen=True)
class InvocationParams:
    """Generation settings sent with every call."""
    seed: int = 0
    temperature: float = 0.2
    max_tokens: int = 2048
    timeout_seconds: float = 30.0


class OracleProvider(ABC):

    @abstractmethod
    def invoke(self, prompt: str, params: InvocationParams) -> ProviderResponse:
        pass

    @abstractmethod
    def get_version(self) -> ProviderVersion:
        pass
