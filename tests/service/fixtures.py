"""
Service-level doubles: a scripted pipeline and a fixed clock.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

from acquisition.contracts import Provenance, RequestKind
from acquisition.reporting import CommunityReporter
from prediction.history import HistoryStore
from service.facade import AnimalitoService

from tests.fixtures import result_set

FIXED_NOW = datetime(2024, 3, 1, 12, 3)


class ScriptedPipeline:
    """
    acquire() answers from a {kind: ResultSet | Exception} script.
    """

    def __init__(self, script):
        self.script = dict(script)
        self.calls = []

    async def acquire(self, lottery_id, kind=RequestKind.TODAY):
        self.calls.append((lottery_id, kind))
        outcome = self.script[kind]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def scripted(today_entries=(), history_entries=(), today=Provenance.LIVE, history=Provenance.LIVE):
    return ScriptedPipeline({
        RequestKind.TODAY: result_set(today_entries, RequestKind.TODAY, today),
        RequestKind.HISTORY: result_set(history_entries, RequestKind.HISTORY, history),
    })


def make_service(pipeline, refiner=None, reporter=None, now=FIXED_NOW, **kwargs):
    return AnimalitoService(
        pipeline=pipeline,
        store=HistoryStore(),
        refiner=refiner,
        reporter=reporter,
        clock=lambda: now,
        **kwargs,
    )


def mock_reporter(result=True):
    fetcher = MagicMock()
    fetcher.post_json = AsyncMock(return_value=result)
    return CommunityReporter(fetcher, "https://community.test/report"), fetcher
