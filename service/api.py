"""
Animalito API Server
====================

Thin HTTP adapter over AnimalitoService.

Endpoints:
- GET  /health
- GET  /api/v1/lotteries
- GET  /api/v1/lotteries/{lottery}/results?kind=today|history
- GET  /api/v1/lotteries/{lottery}/predictions?n=5&refine=false
- GET  /api/v1/lotteries/{lottery}/schedule
- POST /api/v1/lotteries/{lottery}/refresh
- POST /api/v1/lotteries/{lottery}/reports

Usage:
    uvicorn service.api:app --reload
"""

from contextlib import asynccontextmanager
import datetime as _dt
from typing import Optional
import logging

from fastapi import BackgroundTasks, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from acquisition.contracts import RequestKind
from acquisition.extractor import is_valid_slot
from prediction.registry import LotteryId, parse_lottery_id, slots_for
from prediction.resolver import IdentifierResolver

from .config import ServiceConfig
from .facade import AnimalitoService, LOTTERY_NAMES, create_service
from .refresh import RefreshScheduler

logger = logging.getLogger(__name__)


class ReportRequest(BaseModel):
    """A user-observed draw result."""
    slot: str = Field(..., description="Draw time, HH:MM")
    animal: str = Field(..., min_length=1, description="Animal name or two-digit number")
    date: Optional[_dt.date] = None


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    service: Optional[AnimalitoService] = None,
    config: Optional[ServiceConfig] = None,
    start_scheduler: bool = True,
) -> FastAPI:
    """Build the app. Without an injected service one is wired from the environment."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = config or ServiceConfig.from_env()
        svc = service or create_service(cfg)
        app.state.service = svc
        app.state.scheduler = None

        if start_scheduler:
            scheduler = RefreshScheduler(
                svc,
                lotteries=cfg.lotteries,
                countdown_interval=cfg.refresh.countdown_interval_seconds,
                refresh_interval=cfg.refresh.refresh_interval_seconds,
                refresh_on_start=cfg.refresh.refresh_on_start,
            )
            scheduler.start()
            app.state.scheduler = scheduler
        logger.info("Animalito service ready")

        yield

        if app.state.scheduler is not None:
            await app.state.scheduler.stop()
        app.state.service = None
        logger.info("Animalito service shut down")

    app = FastAPI(
        title="Animalito Prediction API",
        version="0.1.0",
        description="Results, predictions and draw schedule for animalito lotteries",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    _register_routes(app)
    return app


def _service(request: Request) -> AnimalitoService:
    svc = getattr(request.app.state, "service", None)
    if svc is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return svc


def _lottery(value: str) -> LotteryId:
    try:
        return parse_lottery_id(value)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown lottery: {value}") from None


# =============================================================================
# ENDPOINTS
# =============================================================================

def _register_routes(app: FastAPI) -> None:

    @app.get("/health")
    async def health_check(request: Request):
        """System status."""
        svc = _service(request)
        scheduler = request.app.state.scheduler
        return {
            "status": "online",
            "refinement": svc.refinement_available,
            "scheduler": {
                "countdown": bool(scheduler and scheduler.countdown_running),
                "refresh": bool(scheduler and scheduler.refresh_running),
            },
            "provenance": {lottery.value: svc.provenance(lottery) for lottery in LotteryId},
        }

    @app.get("/api/v1/lotteries")
    async def list_lotteries():
        return {
            "lotteries": [
                {
                    "id": lottery.value,
                    "name": LOTTERY_NAMES.get(lottery, lottery.value),
                    "slots": [slot.time for slot in slots_for(lottery)],
                }
                for lottery in LotteryId
            ]
        }

    @app.get("/api/v1/lotteries/{lottery}/results")
    async def get_results(request: Request, lottery: str, kind: RequestKind = RequestKind.TODAY):
        """
        Results for one request kind.

        `provenance` says whether the data is live, cached, stale or synthetic.
        """
        lottery_id = _lottery(lottery)
        result_set = await _service(request).results(lottery_id, kind)
        return result_set.to_dict()

    @app.get("/api/v1/lotteries/{lottery}/predictions")
    def get_predictions(
        request: Request,
        lottery: str,
        n: Optional[int] = Query(None, ge=1, le=37),
        refine: bool = False,
    ):
        # sync handler: oracle refinement performs blocking HTTP and runs in the threadpool
        lottery_id = _lottery(lottery)
        return _service(request).predictions(lottery_id, n=n, refine=refine).to_dict()

    @app.get("/api/v1/lotteries/{lottery}/schedule")
    async def get_schedule(request: Request, lottery: str):
        lottery_id = _lottery(lottery)
        svc = _service(request)
        return {
            "lottery": lottery_id.value,
            "countdown": svc.countdown(lottery_id),
            "slots": [status.to_dict() for status in svc.schedule(lottery_id)],
        }

    @app.post("/api/v1/lotteries/{lottery}/refresh")
    async def post_refresh(request: Request, lottery: str):
        lottery_id = _lottery(lottery)
        report = await _service(request).refresh(lottery_id)
        return report.to_dict()

    @app.post("/api/v1/lotteries/{lottery}/reports", status_code=202)
    async def post_report(request: Request, lottery: str, report: ReportRequest,
                          background_tasks: BackgroundTasks):
        """Queue a community report. Local history is not modified."""
        lottery_id = _lottery(lottery)
        svc = _service(request)
        if not is_valid_slot(report.slot) or report.slot not in {s.time for s in slots_for(lottery_id)}:
            raise HTTPException(status_code=422, detail=f"Not a draw slot of {lottery_id.value}: {report.slot}")
        animal = IdentifierResolver().resolve(report.animal)
        if animal is None:
            raise HTTPException(status_code=422, detail=f"Unknown animal: {report.animal}")

        background_tasks.add_task(svc.report_result, lottery_id, report.slot, animal.code, report.date)
        return {"accepted": True, "lottery": lottery_id.value, "slot": report.slot, "number": animal.code}


app = create_app()
