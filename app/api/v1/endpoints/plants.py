from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.deps import CurrentUser, Scheduler, get_db
from app.models.plant import Plant, WateringEvent
from app.schemas.plant import (
    PlantCreate,
    PlantRead,
    PlantStats,
    PlantUpdate,
    WateringEventRead,
    WateringWindowStatus,
)
from app.services.watering_windows import find_overdue

router = APIRouter(prefix="/plants", tags=["plants"])


# ── Helpers ────────────────────────────────────────────────────────────────────


async def get_owned_plant(db: AsyncSession, plant_id: int, user_id: int) -> Plant:
    plant = await db.scalar(select(Plant).where(Plant.id == plant_id, Plant.user_id == user_id))
    if not plant:
        raise HTTPException(status_code=404, detail="Plant not found")
    return plant


def plant_to_read(plant: Plant) -> PlantRead:
    read = PlantRead.model_validate(plant)
    read.needs_water = bool(find_overdue([plant], datetime.now(timezone.utc)))
    return read


# ── Plant endpoints ────────────────────────────────────────────────────────────


@router.get("", response_model=list[PlantRead])
async def list_plants(current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Plant).where(Plant.user_id == current_user.id).order_by(Plant.created_at.desc(), Plant.id.desc())
    )
    return [plant_to_read(p) for p in result.scalars().all()]


@router.post("", response_model=PlantRead, status_code=status.HTTP_201_CREATED)
async def create_plant(data: PlantCreate, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    plant = Plant(
        user_id=current_user.id,
        name=data.name.strip(),
        plant_type=data.plant_type,
        watering_interval_hours=data.watering_interval_hours,
        image_url=data.image_url,
    )
    db.add(plant)
    await db.commit()
    await db.refresh(plant)
    return plant_to_read(plant)


@router.get("/{plant_id}", response_model=PlantRead)
async def get_plant(plant_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    return plant_to_read(await get_owned_plant(db, plant_id, current_user.id))


@router.patch("/{plant_id}", response_model=PlantRead)
async def update_plant(
    plant_id: int,
    data: PlantUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    plant = await get_owned_plant(db, plant_id, current_user.id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(plant, field, value)
    await db.commit()
    await db.refresh(plant)
    return plant_to_read(plant)


@router.delete("/{plant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plant(plant_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    plant = await get_owned_plant(db, plant_id, current_user.id)
    await db.delete(plant)
    await db.commit()


@router.get("/{plant_id}/stats", response_model=PlantStats)
async def get_plant_stats(plant_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    plant = await get_owned_plant(db, plant_id, current_user.id)
    result = await db.execute(
        select(WateringEvent).where(WateringEvent.plant_id == plant.id).order_by(WateringEvent.id)
    )
    history = result.scalars().all()

    if history:
        average = sum(e.moisture_after for e in history) / len(history)
    else:
        average = float(plant.soil_moisture)

    recent = history[-settings.HISTORY_DISPLAY_LIMIT:]
    return PlantStats(
        total_waterings=len(history),
        average_moisture=average,
        last_watered=plant.last_watered,
        watering_history=[WateringEventRead.model_validate(e) for e in recent],
    )


@router.get("/{plant_id}/watering-window", response_model=WateringWindowStatus)
async def get_watering_window(
    plant_id: int,
    current_user: CurrentUser,
    scheduler: Scheduler,
    db: AsyncSession = Depends(get_db),
):
    plant = await get_owned_plant(db, plant_id, current_user.id)
    schedule_ids = await scheduler.windows_open_for_plant(plant.id)
    return WateringWindowStatus(plant_id=plant.id, in_window=bool(schedule_ids), schedule_ids=schedule_ids)
