"""
Watering executor: the single place plant moisture, last_watered and history change.

Scheduled waterings (+SCHEDULED_MOISTURE_GAIN, duration = window length) and
manual stop-watering requests (+MANUAL_MOISTURE_GAIN, caller-supplied duration)
both go through here, so both are serialized by the same per-plant lock and
both use the store's atomic conditional update.

The in-process lock serializes the API and the scheduler inside one process;
the row lock taken by PlantStore.update() covers a separate worker process.
"""
import asyncio
import logging
import weakref
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from app.core.config import settings
from app.core.errors import MissingReference
from app.models.plant import Plant, WateringEvent
from app.services.stores import PlantStore, WateringResult
from app.services.watering_windows import (
    WateringWindow,
    clamp_moisture,
    cooldown_elapsed,
    ensure_aware,
)

logger = logging.getLogger(__name__)


class PlantLocks:
    """One asyncio.Lock per plant id, dropped once nobody holds a reference."""

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def for_plant(self, plant_id: int) -> asyncio.Lock:
        lock = self._locks.get(plant_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[plant_id] = lock
        return lock


plant_locks = PlantLocks()


def _record_watering(
    plant: Plant,
    now: datetime,
    gain: int,
    duration_seconds: int,
    source: str,
    schedule_id: Optional[int] = None,
) -> WateringEvent:
    before = plant.soil_moisture
    after = clamp_moisture(before + gain)
    # last_watered never moves backwards through the executor
    if plant.last_watered is None or ensure_aware(plant.last_watered) < now:
        plant.last_watered = now
    plant.soil_moisture = after
    return WateringEvent(
        schedule_id=schedule_id,
        source=source,
        timestamp=now,
        duration_seconds=duration_seconds,
        moisture_before=before,
        moisture_after=after,
    )


class WateringExecutor:
    def __init__(
        self,
        plants: PlantStore,
        *,
        locks: PlantLocks = plant_locks,
        cooldown: Optional[timedelta] = None,
        scheduled_gain: Optional[int] = None,
        manual_gain: Optional[int] = None,
    ):
        self.plants = plants
        self.locks = locks
        self.cooldown = cooldown if cooldown is not None else timedelta(minutes=settings.WATERING_COOLDOWN_MINUTES)
        self.scheduled_gain = scheduled_gain if scheduled_gain is not None else settings.SCHEDULED_MOISTURE_GAIN
        self.manual_gain = manual_gain if manual_gain is not None else settings.MANUAL_MOISTURE_GAIN

    async def water_on_schedule(
        self,
        schedule: Any,
        window: WateringWindow,
        now: datetime,
        *,
        fired_on: Optional[date] = None,
    ) -> Optional[WateringResult]:
        """
        Water the schedule's plant for one window occurrence.

        The cooldown is checked again on the locked row, so a manual watering
        or a second schedule that got there first turns this into a no-op.
        `fired_on` enables the strict once-per-window-per-day marker.
        """
        now = ensure_aware(now)

        def apply(plant: Plant) -> Optional[WateringEvent]:
            if not plant.is_active:
                return None
            if not cooldown_elapsed(plant, now, self.cooldown):
                return None
            return _record_watering(
                plant, now, self.scheduled_gain, window.duration_seconds, "schedule", schedule.id
            )

        marker = (schedule.id, fired_on) if fired_on is not None else None
        async with self.locks.for_plant(schedule.plant_id):
            result = await self.plants.update(schedule.plant_id, apply, window=marker)

        if result is not None:
            logger.info(
                "watering: schedule %d watered plant %d (%d%% → %d%%, %ds)",
                schedule.id, schedule.plant_id,
                result.entry.moisture_before, result.entry.moisture_after, result.entry.duration_seconds,
            )
        return result

    async def start_watering(self, plant_id: int) -> Plant:
        """Manual start. No state changes until the matching stop; only confirms the plant exists."""
        async with self.locks.for_plant(plant_id):
            plant = await self.plants.get_by_id(plant_id)
        if plant is None:
            raise MissingReference(plant_id)
        return plant

    async def stop_watering(
        self,
        plant_id: int,
        duration_seconds: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> WateringResult:
        """Manual stop: record the watering with the manual moisture gain. No cooldown applies."""
        now = ensure_aware(now) if now is not None else datetime.now(timezone.utc)
        if duration_seconds is None:
            duration_seconds = settings.DEFAULT_MANUAL_DURATION_SECONDS

        def apply(plant: Plant) -> WateringEvent:
            return _record_watering(plant, now, self.manual_gain, duration_seconds, "manual")

        async with self.locks.for_plant(plant_id):
            result = await self.plants.update(plant_id, apply)
        if result is None:
            raise MissingReference(plant_id)

        logger.info(
            "watering: manual stop on plant %d (%d%% → %d%%, %ds)",
            plant_id, result.entry.moisture_before, result.entry.moisture_after, duration_seconds,
        )
        return result
