"""
Source Fetcher

Fetches raw bodies from result sources over HTTP.

PRINCIPLES:
===========
1. Every attempt ends in a FetchResult, success or not
2. Timeouts are hard, per request: each relay and the direct URL get their own
3. Relays are transparent: callers get the target's body either way
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional, Sequence, Tuple
from urllib.parse import quote
import asyncio
import json
import logging

import httpx

from .contracts import FetchResult, FetchStatus, RawResponse, RelayConfig, SourceDescriptor

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "AnimalitoPredictor/1.0"

BROWSER_HEADERS = {
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'es-ES,es;q=0.9,en;q=0.8',
}


class FetchError(Exception):
    """Raised inside the fetcher; always converted to a FetchResult."""

    def __init__(self, status: FetchStatus, message: str, http_status: Optional[int] = None):
        super().__init__(message)
        self.status = status
        self.http_status = http_status


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SourceFetcher:
    """
    Fetches source bodies, optionally through CORS relays.

    GUARANTEES:
    ===========
    1. `fetch` never raises; failures come back as FetchResult
    2. Relays are tried in order, then the direct URL
    """

    def __init__(
        self,
        timeout: float = 10.0,
        relays: Sequence[RelayConfig] = (),
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._timeout = timeout
        self._relays = tuple(r for r in relays if r.enabled)
        self._user_agent = user_agent
        self._transport = transport

    @property
    def timeout(self) -> float:
        return self._timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    def _headers(self, source: SourceDescriptor) -> dict:
        headers = {'User-Agent': self._user_agent, **BROWSER_HEADERS}
        headers.update(source.header_dict())
        return headers

    async def fetch(
        self,
        source: SourceDescriptor,
        url: str,
    ) -> Tuple[FetchResult, Optional[RawResponse]]:
        """
        Fetch a source URL.

        Returns:
            - FetchResult (always)
            - RawResponse (if a body was obtained)
        """
        attempted_at = _utcnow()
        last_error: Optional[FetchError] = None

        async with self._client() as client:
            for relay in self._relays + (None,):
                try:
                    raw = await asyncio.wait_for(self._get(client, source, url, relay), timeout=self._timeout)
                except asyncio.TimeoutError:
                    last_error = FetchError(FetchStatus.TIMEOUT, f"No response within {self._timeout}s")
                    logger.debug("%s via %s timed out", source.name, relay.prefix if relay else 'direct')
                    continue
                except FetchError as e:
                    last_error = e
                    logger.debug("%s via %s failed: %s", source.name, relay.prefix if relay else 'direct', e)
                    continue

                result = FetchResult(
                    source_name=source.name,
                    url=url,
                    attempted_at=attempted_at,
                    completed_at=_utcnow(),
                    status=FetchStatus.SUCCESS,
                    http_status=raw.http_status,
                )
                return result, raw

        return FetchResult(
            source_name=source.name,
            url=url,
            attempted_at=attempted_at,
            completed_at=_utcnow(),
            status=last_error.status if last_error else FetchStatus.NETWORK_ERROR,
            error_message=str(last_error) if last_error else "no attempt made",
            http_status=last_error.http_status if last_error else None,
        ), None

    async def _get(
        self,
        client: httpx.AsyncClient,
        source: SourceDescriptor,
        url: str,
        relay: Optional[RelayConfig],
    ) -> RawResponse:
        target = f"{relay.prefix}{quote(url, safe='')}" if relay else url
        try:
            response = await client.get(target, headers=self._headers(source))
        except httpx.TimeoutException as e:
            raise FetchError(FetchStatus.TIMEOUT, f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise FetchError(FetchStatus.NETWORK_ERROR, str(e) or type(e).__name__) from e

        if response.status_code != 200:
            raise FetchError(
                FetchStatus.HTTP_ERROR,
                f"HTTP {response.status_code}",
                http_status=response.status_code
            )

        text = response.text
        if relay and relay.json_field:
            try:
                text = json.loads(text)[relay.json_field]
            except (ValueError, KeyError, TypeError) as e:
                raise FetchError(FetchStatus.PARSE_ERROR, f"Relay envelope unreadable: {e}") from e
            if not isinstance(text, str):
                raise FetchError(FetchStatus.PARSE_ERROR, "Relay envelope has no text content")

        return RawResponse(
            url=url,
            http_status=response.status_code,
            text=text,
            via_relay=relay.prefix if relay else None,
        )

    async def post_json(self, url: str, payload: dict) -> bool:
        """POST a JSON body. True on 2xx, False on anything else."""
        try:
            async with self._client() as client:
                response = await client.post(
                    url,
                    json=payload,
                    headers={'User-Agent': self._user_agent}
                )
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning("POST %s failed: %s", url, e)
            return False
