"""
Gemini Oracle Provider
======================

Calls the Gemini `generateContent` REST endpoint with a JSON response
schema. Uses httpx directly; no vendor SDK.
"""

from __future__ import annotations
from typing import Optional
import time

import httpx

from .base import (
    InvocationParams, OracleProvider, ProviderErrorCode, ProviderResponse, ProviderVersion, elapsed_ms,
)

API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.0-flash"

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "predictions": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "identifier": {"type": "STRING", "description": "Animal number or name"},
                    "probability": {"type": "NUMBER", "description": "Probability from 0 to 100"},
                    "confidenceTier": {"type": "STRING", "enum": ["HIGH", "MEDIUM", "LOW"]},
                    "rationale": {"type": "STRING", "description": "Short statistical explanation"},
                },
                "required": ["identifier", "probability", "confidenceTier", "rationale"],
            },
        },
    },
    "required": ["predictions"],
}


class GeminiProvider(OracleProvider):
    """
    EXPLICIT FAILURE STATES:
    - NOT_CONFIGURED: no API key
    - TIMEOUT / NETWORK_ERROR: transport failures
    - RATE_LIMITED: HTTP 429
    - API_ERROR: any other non-200
    - CONTENT_FILTERED: no candidate text returned
    - INVALID_RESPONSE: envelope could not be read
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        base_url: str = API_BASE,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip('/')
        self._transport = transport
        self._version = ProviderVersion(provider_id="gemini", model_id=model)

    def get_version(self) -> ProviderVersion:
        return self._version

    def invoke(self, prompt: str, params: InvocationParams) -> ProviderResponse:
        started = time.monotonic()

        if not self._api_key:
            return ProviderResponse.failed(ProviderErrorCode.NOT_CONFIGURED, "No API key configured")

        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
                "temperature": params.temperature,
                "maxOutputTokens": params.max_tokens,
                "seed": params.seed,
            },
        }
        url = f"{self._base_url}/models/{self._model}:generateContent"

        try:
            with httpx.Client(timeout=params.timeout_seconds, transport=self._transport) as client:
                response = client.post(url, params={"key": self._api_key}, json=body)
        except httpx.TimeoutException as e:
            return ProviderResponse.failed(ProviderErrorCode.TIMEOUT, str(e), started)
        except httpx.HTTPError as e:
            return ProviderResponse.failed(ProviderErrorCode.NETWORK_ERROR, str(e), started)

        if response.status_code == 429:
            return ProviderResponse.failed(ProviderErrorCode.RATE_LIMITED, "HTTP 429", started)
        if response.status_code != 200:
            return ProviderResponse.failed(ProviderErrorCode.API_ERROR, f"HTTP {response.status_code}", started)

        try:
            data = response.json()
            candidates = data.get("candidates") or []
            parts = candidates[0]["content"]["parts"] if candidates else []
            text = "".join(p.get("text", "") for p in parts)
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            return ProviderResponse.failed(ProviderErrorCode.INVALID_RESPONSE, f"Unreadable envelope: {e}", started)

        if not text:
            return ProviderResponse.failed(ProviderErrorCode.CONTENT_FILTERED, "No candidate text returned", started)

        return ProviderResponse(content=text, latency_ms=elapsed_ms(started))
