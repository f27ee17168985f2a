"""
ARQ watering task.

check_watering_schedules (every minute)
    One watering-scheduler cycle: overdue alerts, window evaluation, scheduled
    waterings and real-time events. Each run is recorded as a PipelineRun row
    ("watering_cycle"); a cycle that cannot reach the stores is marked failed.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.session import AsyncSessionLocal
from app.models.logs import PipelineRun
from app.services.events import RedisEventNotifier
from app.services.scheduler import CycleReport, WateringScheduler
from app.services.stores import PlantStore, ScheduleStore

logger = logging.getLogger(__name__)

PIPELINE_NAME = "watering_cycle"


def build_scheduler(
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
    redis=None,
) -> WateringScheduler:
    notifier = RedisEventNotifier(redis) if redis is not None else None
    return WateringScheduler(
        PlantStore(session_factory),
        ScheduleStore(session_factory),
        notifier,
    )


async def run_recorded_cycle(
    scheduler: WateringScheduler,
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
    *,
    wait: bool = False,
) -> CycleReport:
    """Run one cycle and record it as a PipelineRun. Re-raises cycle-fatal errors."""
    started_at = datetime.now(timezone.utc)

    async with session_factory() as db:
        pipeline = PipelineRun(
            pipeline_name=PIPELINE_NAME,
            status="running",
            started_at=started_at,
        )
        db.add(pipeline)
        await db.commit()
        await db.refresh(pipeline)

        try:
            report = await scheduler.run_cycle(wait=wait)

            finished_at = datetime.now(timezone.utc)
            pipeline.status = "skipped" if report.skipped else "success"
            pipeline.finished_at = finished_at
            pipeline.duration_ms = int((finished_at - started_at).total_seconds() * 1000)
            pipeline.records_processed = len(report.watered)
            if report.errors:
                pipeline.error_message = "; ".join(report.errors)[:2000]
            await db.commit()
            return report

        except Exception as exc:
            logger.exception("check_watering_schedules: cycle failed")
            finished_at = datetime.now(timezone.utc)
            pipeline.status = "failed"
            pipeline.finished_at = finished_at
            pipeline.duration_ms = int((finished_at - started_at).total_seconds() * 1000)
            pipeline.error_message = str(exc)
            await db.commit()
            raise


async def check_watering_schedules(ctx: dict) -> dict:
    """Evaluate overdue plants and watering windows. Runs every minute."""
    logger.info("check_watering_schedules: starting")
    session_factory = ctx.get("session_factory") or AsyncSessionLocal
    scheduler = ctx.get("watering_scheduler") or build_scheduler(session_factory, redis=ctx.get("redis"))
    report = await run_recorded_cycle(scheduler, session_factory)
    logger.info(
        "check_watering_schedules: complete: %d plants watered, %d events",
        len(report.watered), report.events_published,
    )
    return report.as_dict()
