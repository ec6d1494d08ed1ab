# readmaster/api/cron.py

import time
from typing import Awaitable, Callable, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from readmaster.api.deps import require_cron_auth
from readmaster.errors import ApiError, ErrorCodes
from readmaster.schemas.cron_schemas import CronJobFailure, CronJobResponse
from readmaster.services.analytics_service import DailyAnalyticsService
from readmaster.services.similarity_service import UserSimilarityService
from readmaster.services.streak_service import StreakService
from readmaster.utils.logger import logger

router = APIRouter(tags=["cron"], dependencies=[Depends(require_cron_auth)])


async def _run_job(
    name: str,
    failure_message: str,
    job: Callable[[], Awaitable[Dict]],
):
    start_time = time.time()
    try:
        stats = await job()
    except Exception as e:
        duration = int((time.time() - start_time) * 1000)
        logger.error(f" {name} cron job failed after {duration}ms: {e}")
        return JSONResponse(
            status_code=500,
            content=CronJobFailure(error=failure_message, message=str(e) or "Unknown error").model_dump(),
        )

    duration = int((time.time() - start_time) * 1000)
    logger.info(f" {name} cron job completed in {duration}ms: {stats}")
    return CronJobResponse(message=f"{name} job completed", duration=duration, stats=stats)


def _session_factory(request: Request):
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        raise ApiError(ErrorCodes.SERVICE_UNAVAILABLE, "Database is not available", 503)
    return session_factory


@router.get("/cron/streak-check", response_model=CronJobResponse)
async def streak_check(request: Request):
    """Advance or reset every user's streak based on yesterday's activity"""
    service = StreakService(_session_factory(request))

    async def job():
        return (await service.process_streak_check()).to_dict()

    return await _run_job("Streak check", "Failed to check streaks", job)


@router.get("/cron/user-similarity", response_model=CronJobResponse)
async def user_similarity(request: Request):
    """Recompute the similar-readers list for every eligible user"""
    service = UserSimilarityService(_session_factory(request))

    async def job():
        return (await service.run()).to_dict()

    return await _run_job("User similarity", "Failed to compute user similarity", job)


@router.get("/cron/daily-analytics", response_model=CronJobResponse)
async def daily_analytics(request: Request):
    """Aggregate yesterday's platform metrics"""
    service = DailyAnalyticsService(_session_factory(request))

    async def job():
        return (await service.run()).to_dict()

    return await _run_job("Daily analytics", "Failed to calculate daily analytics", job)
