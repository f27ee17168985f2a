from arq.connections import ArqRedis
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.deps import AdminUser, Scheduler, get_db
from app.models.logs import PipelineRun
from app.tasks.watering import PIPELINE_NAME

router = APIRouter(prefix="/admin", tags=["admin"])


async def _get_arq_redis() -> ArqRedis:
    """Create an ArqRedis instance from the same Redis URL the worker uses."""
    from arq.connections import RedisSettings, create_pool
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)
    return await create_pool(redis_settings)


@router.post("/watering/cycle")
async def run_watering_cycle(admin_user: AdminUser, scheduler: Scheduler) -> dict:
    """Run one evaluation cycle in this process right now and return its report."""
    report = await scheduler.trigger()
    return report.as_dict()


@router.post("/watering/enqueue")
async def enqueue_watering_cycle(admin_user: AdminUser) -> dict:
    pool = await _get_arq_redis()
    try:
        job = await pool.enqueue_job("check_watering_schedules")
    finally:
        await pool.close()

    return {"status": "queued", "job_id": job.job_id if job else None}


@router.get("/pipelines")
async def list_pipelines(
    admin_user: AdminUser,
    db: AsyncSession = Depends(get_db),
    pipeline_name: str = Query(PIPELINE_NAME),
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
) -> dict:
    query = select(PipelineRun).where(PipelineRun.pipeline_name == pipeline_name)
    if status:
        query = query.where(PipelineRun.status == status)

    total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0
    result = await db.execute(
        query.order_by(PipelineRun.started_at.desc(), PipelineRun.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    items = [
        {
            "id": run.id,
            "pipeline_name": run.pipeline_name,
            "status": run.status,
            "started_at": run.started_at,
            "finished_at": run.finished_at,
            "duration_ms": run.duration_ms,
            "records_processed": run.records_processed,
            "error_message": run.error_message,
        }
        for run in result.scalars().all()
    ]
    return {"items": items, "total": total, "page": page, "per_page": per_page}
