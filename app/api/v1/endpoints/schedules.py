from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.v1.endpoints.plants import get_owned_plant
from app.core.deps import CurrentUser, get_db
from app.models.schedule import WateringSchedule
from app.schemas.schedule import ScheduleCreate, ScheduleRead, ScheduleUpdate

router = APIRouter(prefix="/watering/schedules", tags=["watering-schedules"])


# ── Helpers ────────────────────────────────────────────────────────────────────


async def _get_owned_schedule(db: AsyncSession, schedule_id: int, user_id: int) -> WateringSchedule:
    schedule = await db.scalar(
        select(WateringSchedule)
        .options(selectinload(WateringSchedule.plant))
        .where(WateringSchedule.id == schedule_id, WateringSchedule.user_id == user_id)
    )
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return schedule


async def _fetch_schedule(db: AsyncSession, schedule_id: int) -> WateringSchedule:
    """Re-fetch a schedule with its plant loaded (use after commit)."""
    return await db.scalar(
        select(WateringSchedule)
        .options(selectinload(WateringSchedule.plant))
        .where(WateringSchedule.id == schedule_id)
        .execution_options(populate_existing=True)
    )


# ── Schedule endpoints ─────────────────────────────────────────────────────────


@router.get("", response_model=list[ScheduleRead])
async def list_schedules(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    plant_id: int | None = Query(None),
    include_inactive: bool = Query(True),
):
    q = (
        select(WateringSchedule)
        .options(selectinload(WateringSchedule.plant))
        .where(WateringSchedule.user_id == current_user.id)
    )
    if not include_inactive:
        q = q.where(WateringSchedule.is_active.is_(True))
    if plant_id:
        q = q.where(WateringSchedule.plant_id == plant_id)

    result = await db.execute(q.order_by(WateringSchedule.start_time, WateringSchedule.id))
    return result.scalars().all()


@router.post("", response_model=ScheduleRead, status_code=status.HTTP_201_CREATED)
async def create_schedule(data: ScheduleCreate, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    await get_owned_plant(db, data.plant_id, current_user.id)

    schedule = WateringSchedule(
        user_id=current_user.id,
        plant_id=data.plant_id,
        start_time=data.start_time,
        end_time=data.end_time,
        days_of_week=data.days_of_week,
    )
    db.add(schedule)
    await db.commit()
    return await _fetch_schedule(db, schedule.id)


@router.get("/{schedule_id}", response_model=ScheduleRead)
async def get_schedule(schedule_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    return await _get_owned_schedule(db, schedule_id, current_user.id)


@router.patch("/{schedule_id}", response_model=ScheduleRead)
async def update_schedule(
    schedule_id: int,
    data: ScheduleUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    schedule = await _get_owned_schedule(db, schedule_id, current_user.id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    start = changes.get("start_time", schedule.start_time)
    end = changes.get("end_time", schedule.end_time)
    if start >= end:
        raise HTTPException(status_code=422, detail="start_time must be before end_time")

    for field, value in changes.items():
        setattr(schedule, field, value)
    await db.commit()
    return await _fetch_schedule(db, schedule.id)


@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(schedule_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    schedule = await _get_owned_schedule(db, schedule_id, current_user.id)
    await db.delete(schedule)
    await db.commit()
