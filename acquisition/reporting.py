"""
Community Reporting

Optional write path: users submit an observed result to the crowd-sourced
endpoint. Fire-and-forget; the outcome never touches local state.
"""

from __future__ import annotations
from datetime import date, datetime, timezone
from typing import Optional
import logging

from prediction.registry import Animal, parse_lottery_id

from .fetcher import SourceFetcher

logger = logging.getLogger(__name__)


def build_report(lottery_id, slot: str, animal: Animal, day: date, now: Optional[datetime] = None) -> dict:
    """The record submitted to the community endpoint."""
    now = now or datetime.now(timezone.utc)
    return {
        'lottery': parse_lottery_id(lottery_id).value,
        'slot': slot,
        'animal': animal.display_name,
        'number': animal.code,
        'date': day.isoformat(),
        'timestamp': int(now.timestamp() * 1000),
    }


class CommunityReporter:
    """Posts reports; returns True/False and never raises."""

    def __init__(self, fetcher: SourceFetcher, report_url: Optional[str]):
        self._fetcher = fetcher
        self._report_url = report_url

    @property
    def enabled(self) -> bool:
        return bool(self._report_url)

    async def report_result(self, lottery_id, slot: str, animal: Animal, day: date) -> bool:
        if not self._report_url:
            logger.info("Community reporting disabled; dropping report for %s", slot)
            return False
        try:
            payload = build_report(lottery_id, slot, animal, day)
            ok = await self._fetcher.post_json(self._report_url, payload)
        except Exception as e:
            logger.warning("Community report failed: %s", e)
            return False
        if not ok:
            logger.warning("Community endpoint rejected report for %s %s", payload['lottery'], slot)
        return ok
