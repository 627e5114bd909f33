"""
Oracle Provider Tests

Providers never raise: every failure is an explicit ProviderResponse.
The Gemini provider is exercised through httpx.MockTransport only.
"""

from unittest.mock import patch
import json
import time

import httpx
import pytest

from oracle.providers import (
    GeminiProvider, InvocationParams, MockProvider, ProviderErrorCode, ProviderResponse,
)

PARAMS = InvocationParams(seed=7, temperature=0.0)
PROMPT = "- #05 León: 30.0 (HIGH) x\n- #12 Caballo: 20.0 (MEDIUM) y\n"


def envelope(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def gemini(handler, api_key="test-key"):
    return GeminiProvider(api_key=api_key, transport=httpx.MockTransport(handler))


class TestResponseContract:

    def test_needs_content_or_error(self):
        with pytest.raises(ValueError):
            ProviderResponse()

    def test_cannot_carry_both(self):
        with pytest.raises(ValueError):
            ProviderResponse(content="{}", error_code=ProviderErrorCode.API_ERROR)

    def test_failed_reply_records_latency(self):
        started = time.monotonic() - 0.25
        response = ProviderResponse.failed(ProviderErrorCode.TIMEOUT, "slow", started)
        assert not response.success
        assert response.latency_ms >= 250

    def test_version_label(self):
        assert GeminiProvider(api_key=None).get_version().label == "gemini/gemini-2.0-flash"


class TestMockProvider:

    def test_deterministic(self):
        a = MockProvider().invoke(PROMPT, PARAMS)
        b = MockProvider().invoke(PROMPT, PARAMS)
        assert a.content == b.content

    def test_echoes_candidates(self):
        data = json.loads(MockProvider().invoke(PROMPT, PARAMS).content)
        assert [p["identifier"] for p in data["predictions"]] == ["05", "12"]

    def test_no_network(self):
        with patch("socket.socket") as mock_socket:
            mock_socket.side_effect = AssertionError("Network call attempted")
            response = MockProvider().invoke(PROMPT, PARAMS)
        assert response.success
        assert mock_socket.call_count == 0

    def test_failure_mode(self):
        response = MockProvider(failure_mode=ProviderErrorCode.CONTENT_FILTERED).invoke(PROMPT, PARAMS)
        assert not response.success
        assert response.error_code == ProviderErrorCode.CONTENT_FILTERED


class TestGeminiProvider:

    def test_request_shape_and_success(self):
        captured = {}

        def handler(request):
            captured["url"] = request.url
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json=envelope('{"predictions": []}'))

        response = gemini(handler).invoke(PROMPT, PARAMS)

        assert response.success
        assert response.content == '{"predictions": []}'
        assert response.latency_ms >= 0
        assert captured["url"].path.endswith("/models/gemini-2.0-flash:generateContent")
        assert captured["url"].params["key"] == "test-key"
        config = captured["body"]["generationConfig"]
        assert config["responseMimeType"] == "application/json"
        assert config["seed"] == 7
        assert "predictions" in config["responseSchema"]["properties"]
        assert captured["body"]["contents"][0]["parts"][0]["text"] == PROMPT

    def test_missing_key_never_calls_out(self):
        def handler(request):
            raise AssertionError("should not be called")

        response = gemini(handler, api_key=None).invoke(PROMPT, PARAMS)
        assert response.error_code == ProviderErrorCode.NOT_CONFIGURED

    @pytest.mark.parametrize("status,code", [
        (429, ProviderErrorCode.RATE_LIMITED),
        (500, ProviderErrorCode.API_ERROR),
        (403, ProviderErrorCode.API_ERROR),
    ])
    def test_http_failures(self, status, code):
        response = gemini(lambda request: httpx.Response(status)).invoke(PROMPT, PARAMS)
        assert not response.success
        assert response.error_code == code

    def test_unreadable_envelope(self):
        response = gemini(lambda request: httpx.Response(200, text="<html>")).invoke(PROMPT, PARAMS)
        assert response.error_code == ProviderErrorCode.INVALID_RESPONSE

    def test_no_candidates_is_content_filtered(self):
        response = gemini(lambda request: httpx.Response(200, json={"candidates": []})).invoke(PROMPT, PARAMS)
        assert response.error_code == ProviderErrorCode.CONTENT_FILTERED

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        assert gemini(handler).invoke(PROMPT, PARAMS).error_code == ProviderErrorCode.TIMEOUT

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("dns", request=request)

        assert gemini(handler).invoke(PROMPT, PARAMS).error_code == ProviderErrorCode.NETWORK_ERROR
