"""
ARQ worker: background task definitions.
Run with: python -m app.worker
"""
import logging

from arq import cron
from arq.connections import RedisSettings

from app.core.config import settings
from app.db.session import AsyncSessionLocal
from app.tasks.watering import build_scheduler, check_watering_schedules

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s  %(levelname)-8s  %(name)s: %(message)s",
    )
    # One scheduler per worker process so its cycle lock spans every tick
    ctx["session_factory"] = AsyncSessionLocal
    ctx["watering_scheduler"] = build_scheduler(AsyncSessionLocal, redis=ctx["redis"])
    logger.info("worker: watering scheduler ready (timezone %s)", settings.SCHEDULE_TIMEZONE)


async def shutdown(ctx: dict) -> None:
    logger.info("worker: shutting down")


# ── Worker settings ───────────────────────────────────────────────────────────


class WorkerSettings:
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)
    functions = [check_watering_schedules]
    cron_jobs = [
        # Every minute at :00; unique=True keeps a slow cycle from being enqueued twice
        cron(check_watering_schedules, second=0, unique=True, timeout=max(settings.SCHEDULER_TICK_SECONDS, 60)),
    ]
    on_startup = startup
    on_shutdown = shutdown


if __name__ == "__main__":
    from arq import run_worker

    run_worker(WorkerSettings)
