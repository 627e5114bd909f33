"""
Test doubles for the acquisition layer.
"""

from datetime import datetime, timezone
import asyncio
import json

from acquisition.contracts import FetchResult, FetchStatus, RawResponse
from acquisition.sources import SourceRegistry


class FakeClock:
    """Monotonic clock that only moves when told to (or when slept on)."""

    def __init__(self, start: float = 1000.0):
        self.value = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(round(seconds, 6))
        self.value += seconds


class ScriptedFetcher:
    """
    Returns a scripted outcome per source name.

    An outcome is a FetchStatus (failure), a string body (success), an
    exception instance (raised), or "hang" (never completes).
    """

    def __init__(self, script=None):
        self.script = dict(script or {})
        self.calls = []

    async def fetch(self, source, url):
        self.calls.append(source.name)
        outcome = self.script.get(source.name, FetchStatus.NETWORK_ERROR)
        now = datetime.now(timezone.utc)

        if outcome == "hang":
            await asyncio.sleep(3600)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, FetchStatus):
            return FetchResult(
                source_name=source.name, url=url, attempted_at=now, completed_at=now,
                status=outcome, error_message="scripted failure",
            ), None
        return FetchResult(
            source_name=source.name, url=url, attempted_at=now, completed_at=now,
            status=FetchStatus.SUCCESS, http_status=200,
        ), RawResponse(url=url, http_status=200, text=outcome)


def api_body(*rows) -> str:
    """`{"results": [...]}` from (hour, animal) pairs."""
    return json.dumps({"results": [{"hour": h, "animal": a} for h, a in rows]})


def api_source(name, priority, history=True, **extra) -> dict:
    data = {
        "name": name,
        "endpoint": f"https://{name.lower()}.example/today",
        "kind": "api",
        "priority": priority,
    }
    if history:
        data["history_endpoint"] = f"https://{name.lower()}.example/history"
    data.update(extra)
    return data


def registry_of(*sources, lottery="LOTTO_ACTIVO", **settings) -> SourceRegistry:
    config = {
        "rate_limits": {"min_interval_seconds": 2.0, "timeout_seconds": 10.0},
        "lotteries": {lottery: list(sources)},
    }
    config.update(settings)
    return SourceRegistry.from_dict(config)
