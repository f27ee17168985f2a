"""
Plant and schedule stores used by the watering scheduler and the manual watering API.

Each call opens its own session from the injected factory so one failing plant
never poisons the unit of work of another. All SQLAlchemy failures surface as
TransientStoreError; callers treat them as "try again next cycle".

PlantStore.update() is the only write path for watering-derived fields. It
locks the plant row, hands it to an `apply` callback and commits the field
changes, the returned history entry and an optional window marker together.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.core.errors import TransientStoreError
from app.models.plant import Plant, WateringEvent
from app.models.schedule import WateringSchedule, WindowFiring

logger = logging.getLogger(__name__)

# Mutates the locked plant and returns the history entry to append, or None to abort.
PlantUpdate = Callable[[Plant], Optional[WateringEvent]]


@dataclass(frozen=True)
class WateringResult:
    plant: Plant
    entry: WateringEvent


class PlantStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_active(self) -> list[Plant]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(Plant).where(Plant.is_active.is_(True)).order_by(Plant.id))
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise TransientStoreError(f"list active plants failed: {exc}") from exc

    async def get_by_id(self, plant_id: int) -> Optional[Plant]:
        try:
            async with self._session_factory() as db:
                return await db.scalar(select(Plant).where(Plant.id == plant_id))
        except SQLAlchemyError as exc:
            raise TransientStoreError(f"read plant {plant_id} failed: {exc}") from exc

    async def update(
        self,
        plant_id: int,
        apply: PlantUpdate,
        *,
        window: Optional[tuple[int, date]] = None,
    ) -> Optional[WateringResult]:
        """
        Atomically apply a watering to one plant.

        Returns None when the plant is gone, `apply` declines, or `window`
        (schedule_id, local date) has already been fired. Nothing is written
        in any of those cases.
        """
        try:
            async with self._session_factory() as db:
                plant = await db.scalar(
                    select(Plant).where(Plant.id == plant_id).with_for_update()
                )
                if plant is None:
                    await db.rollback()
                    return None

                entry = apply(plant)
                if entry is None:
                    await db.rollback()
                    return None

                entry.plant_id = plant.id
                db.add(entry)
                if window is not None:
                    schedule_id, window_date = window
                    db.add(WindowFiring(schedule_id=schedule_id, window_date=window_date))

                try:
                    await db.commit()
                except IntegrityError:
                    await db.rollback()
                    logger.info(
                        "plant_store: window %s already fired for plant %d, update discarded",
                        window, plant_id,
                    )
                    return None

                await db.refresh(plant)
                return WateringResult(plant=plant, entry=entry)
        except SQLAlchemyError as exc:
            raise TransientStoreError(f"update plant {plant_id} failed: {exc}") from exc


class ScheduleStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_active(self) -> list[WateringSchedule]:
        """Active schedules with `plant` resolved (None when the plant was deleted)."""
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(WateringSchedule)
                    .options(selectinload(WateringSchedule.plant))
                    .where(WateringSchedule.is_active.is_(True))
                    .order_by(WateringSchedule.id)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise TransientStoreError(f"list active schedules failed: {exc}") from exc

    async def list_active_for_plant(self, plant_id: int) -> list[WateringSchedule]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(WateringSchedule)
                    .options(selectinload(WateringSchedule.plant))
                    .where(
                        WateringSchedule.is_active.is_(True),
                        WateringSchedule.plant_id == plant_id,
                    )
                    .order_by(WateringSchedule.id)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise TransientStoreError(f"list schedules for plant {plant_id} failed: {exc}") from exc
