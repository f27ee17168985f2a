from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.plants import get_owned_plant, plant_to_read
from app.core.deps import CurrentUser, Executor, Notifier, get_db
from app.schemas.plant import WateringEventRead
from app.schemas.watering import StopWateringRequest, WateringResponse
from app.services.events import WATERING_STARTED, WATERING_STOPPED

router = APIRouter(prefix="/watering", tags=["watering"])


@router.post("/start/{plant_id}", response_model=WateringResponse)
async def start_watering(
    plant_id: int,
    current_user: CurrentUser,
    executor: Executor,
    notifier: Notifier,
    db: AsyncSession = Depends(get_db),
):
    await get_owned_plant(db, plant_id, current_user.id)
    plant = await executor.start_watering(plant_id)

    await notifier.publish(current_user.id, WATERING_STARTED, {"plant_id": plant.id, "plant_name": plant.name})
    return WateringResponse(message="Watering started", plant=plant_to_read(plant))


@router.post("/stop/{plant_id}", response_model=WateringResponse)
async def stop_watering(
    plant_id: int,
    current_user: CurrentUser,
    executor: Executor,
    notifier: Notifier,
    db: AsyncSession = Depends(get_db),
    body: StopWateringRequest = StopWateringRequest(),
):
    await get_owned_plant(db, plant_id, current_user.id)
    result = await executor.stop_watering(plant_id, body.duration)

    await notifier.publish(
        current_user.id,
        WATERING_STOPPED,
        {
            "plant_id": result.plant.id,
            "plant_name": result.plant.name,
            "duration": result.entry.duration_seconds,
            "moisture_after": result.entry.moisture_after,
        },
    )
    return WateringResponse(
        message="Watering stopped",
        plant=plant_to_read(result.plant),
        entry=WateringEventRead.model_validate(result.entry),
    )
