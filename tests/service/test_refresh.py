"""
Refresh Scheduler Tests

The countdown and refresh timers are independent tasks: cancelling one
leaves the other running.
"""

from datetime import date
import asyncio

from acquisition.contracts import RequestKind
from prediction.registry import LotteryId
from service.refresh import RefreshScheduler

from tests.fixtures import day_results
from .fixtures import ScriptedPipeline, make_service, scripted

TODAY_RESULTS = day_results(date(2024, 3, 1), [("09:00", "05")], source="web")


async def fast(_seconds):
    await asyncio.sleep(0)


async def spin(times=50):
    for _ in range(times):
        await asyncio.sleep(0)


class TestTicks:

    def test_countdown_tick(self):
        seen = []
        scheduler = RefreshScheduler(make_service(scripted()), on_countdown=seen.append)

        countdowns = scheduler.tick_countdown()

        assert countdowns[LotteryId.LOTTO_ACTIVO] == "57m 0s"
        assert countdowns[LotteryId.GUACHARO] == "57m 0s"
        assert scheduler.countdown_ticks == 1
        assert seen == [countdowns]

    def test_refresh_all(self):
        pipeline = scripted(TODAY_RESULTS)
        scheduler = RefreshScheduler(make_service(pipeline), lotteries=[LotteryId.LOTTO_ACTIVO])

        reports = asyncio.run(scheduler.refresh_all())

        assert reports[LotteryId.LOTTO_ACTIVO].merged == 1
        assert scheduler.last_reports == reports
        assert scheduler.refresh_cycles == 1
        assert len(pipeline.calls) == 2

    def test_refresh_failure_is_contained(self):
        service = make_service(scripted())

        async def broken(lottery):
            raise RuntimeError("store on fire")

        service.refresh = broken
        scheduler = RefreshScheduler(service)

        assert asyncio.run(scheduler.refresh_all()) == {}
        assert scheduler.refresh_cycles == 1


class TestLifecycle:

    def test_start_runs_both_timers(self):
        pipeline = scripted(TODAY_RESULTS)
        scheduler = RefreshScheduler(make_service(pipeline), sleep=fast)

        async def scenario():
            scheduler.start()
            await spin()
            running = (scheduler.countdown_running, scheduler.refresh_running)
            await scheduler.stop()
            return running

        assert asyncio.run(scenario()) == (True, True)
        assert scheduler.countdown_ticks > 0
        assert scheduler.refresh_cycles > 0
        assert not scheduler.countdown_running
        assert not scheduler.refresh_running

    def test_cancel_countdown_leaves_refresh_running(self):
        scheduler = RefreshScheduler(make_service(scripted()), sleep=fast)

        async def scenario():
            scheduler.start()
            await spin()
            await scheduler.cancel_countdown()
            ticks = scheduler.countdown_ticks
            cycles = scheduler.refresh_cycles
            await spin()
            state = (
                scheduler.countdown_running,
                scheduler.refresh_running,
                scheduler.countdown_ticks == ticks,
                scheduler.refresh_cycles > cycles,
            )
            await scheduler.stop()
            return state

        assert asyncio.run(scenario()) == (False, True, True, True)

    def test_cancel_refresh_leaves_countdown_running(self):
        scheduler = RefreshScheduler(make_service(scripted()), sleep=fast)

        async def scenario():
            scheduler.start()
            await spin()
            await scheduler.cancel_refresh()
            cycles = scheduler.refresh_cycles
            ticks = scheduler.countdown_ticks
            await spin()
            state = (
                scheduler.refresh_running,
                scheduler.countdown_running,
                scheduler.refresh_cycles == cycles,
                scheduler.countdown_ticks > ticks,
            )
            await scheduler.stop()
            return state

        assert asyncio.run(scenario()) == (False, True, True, True)

    def test_start_is_idempotent(self):
        scheduler = RefreshScheduler(make_service(scripted()), sleep=fast)

        async def scenario():
            scheduler.start()
            first = scheduler._countdown_task
            scheduler.start()
            same = scheduler._countdown_task is first
            await scheduler.stop()
            return same

        assert asyncio.run(scenario())

    def test_deferred_first_refresh(self):
        pipeline = ScriptedPipeline({RequestKind.TODAY: RuntimeError("x"), RequestKind.HISTORY: RuntimeError("y")})
        sleeps = []

        async def never(seconds):
            sleeps.append(seconds)
            await asyncio.sleep(3600)

        scheduler = RefreshScheduler(make_service(pipeline), refresh_on_start=False, sleep=never)

        async def scenario():
            scheduler.start()
            await spin()
            await scheduler.stop()

        asyncio.run(scenario())
        assert pipeline.calls == []
        assert 300.0 in sleeps
