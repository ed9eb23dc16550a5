# src/gg_run/api/router.py
"""Scheduled-run trigger, called hourly by the external cron platform.

Status codes:
  401 bad secret, 500 secret unset (raised by verify_cron_secret)
  503 neither tier could read its due work
  200 everything else, including per-unit failures and a held run lock
"""

import logging
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.gg_common.database import get_db_session
from src.gg_common.enums import Tier
from src.gg_common.redis_client import acquire_run_lock, get_redis, release_run_lock
from src.gg_gateway.auth.cron_secret import verify_cron_secret
from src.gg_run.application.factory import build_orchestrator
from src.gg_run.application.orchestrator import RunOrchestrator, new_run_id
from src.gg_run.application.schemas import RunResponse
from src.gg_run.domain.models import RunSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


async def get_orchestrator(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> RunOrchestrator:
    return build_orchestrator(db)


@router.api_route(
    "/process-geogrid-schedules",
    methods=["GET", "POST"],
    response_model=RunResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def process_geogrid_schedules(
    orchestrator: Annotated[RunOrchestrator, Depends(get_orchestrator)],
    redis: Annotated[aioredis.Redis, Depends(get_redis)],
) -> JSONResponse:
    run_id = new_run_id()

    lock_holder: aioredis.Redis | None = redis
    locked = True
    try:
        locked = await acquire_run_lock(redis, run_id, settings.RUN_LOCK_TTL_SECONDS)
    except RedisError:
        # Ledger keys still prevent double charges; run without the lock.
        logger.warning("Run lock unavailable, continuing unlocked: run=%s", run_id, exc_info=True)
        lock_holder = None

    if not locked:
        logger.info("Scheduled run already in progress, skipping: run=%s", run_id)
        return _respond(RunSummary(run_id=run_id, already_running=True))

    try:
        summary = await orchestrator.run(run_id)
    finally:
        if lock_holder is not None:
            try:
                await release_run_lock(lock_holder, run_id)
            except RedisError:
                logger.warning("Failed to release run lock: run=%s", run_id, exc_info=True)

    return _respond(summary)


def _respond(summary: RunSummary) -> JSONResponse:
    both_tiers_failed = {Tier.GROUP.value, Tier.CUSTOM_UNIT.value} <= summary.tier_errors.keys()
    body = RunResponse.from_domain(summary).model_dump(mode="json", by_alias=True)
    return JSONResponse(status_code=503 if both_tiers_failed else 200, content=body)
