import asyncio
from datetime import timedelta

import pytest

from app.core.errors import MissingReference
from app.services.watering import PlantLocks, WateringExecutor
from app.services.watering_windows import window_for
from tests.fakes import MONDAY, InMemoryPlantStore, at, make_plant, make_schedule


def _executor(store: InMemoryPlantStore) -> WateringExecutor:
    return WateringExecutor(
        store,
        locks=PlantLocks(),
        cooldown=timedelta(minutes=60),
        scheduled_gain=15,
        manual_gain=20,
    )


async def test_stop_watering_clamps_moisture():
    plant = make_plant(soil_moisture=90)
    store = InMemoryPlantStore([plant])
    now = at(MONDAY, "10:00")

    result = await _executor(store).stop_watering(plant.id, 45, now=now)

    assert result.entry.moisture_before == 90
    assert result.entry.moisture_after == 100
    assert result.entry.duration_seconds == 45
    assert result.entry.source == "manual"
    assert plant.soil_moisture == 100
    assert plant.last_watered == now
    assert store.history[plant.id] == [result.entry]


async def test_stop_watering_default_duration():
    plant = make_plant(soil_moisture=10)
    store = InMemoryPlantStore([plant])

    result = await _executor(store).stop_watering(plant.id, now=at(MONDAY, "10:00"))

    assert result.entry.duration_seconds == 30
    assert result.entry.moisture_after == 30


async def test_stop_watering_ignores_cooldown():
    now = at(MONDAY, "10:00")
    plant = make_plant(last_watered=now - timedelta(minutes=1), soil_moisture=40)
    store = InMemoryPlantStore([plant])

    result = await _executor(store).stop_watering(plant.id, 10, now=now)

    assert result.entry.moisture_after == 60


async def test_stop_watering_never_moves_last_watered_backwards():
    now = at(MONDAY, "10:00")
    later = now + timedelta(hours=1)
    plant = make_plant(last_watered=later)
    store = InMemoryPlantStore([plant])

    await _executor(store).stop_watering(plant.id, 10, now=now)

    assert plant.last_watered == later


async def test_stop_watering_missing_plant():
    with pytest.raises(MissingReference) as exc_info:
        await _executor(InMemoryPlantStore()).stop_watering(404, 10)
    assert exc_info.value.plant_id == 404


async def test_start_watering_changes_nothing():
    plant = make_plant(soil_moisture=33)
    store = InMemoryPlantStore([plant])

    returned = await _executor(store).start_watering(plant.id)

    assert returned is plant
    assert plant.soil_moisture == 33
    assert store.writes == 0


async def test_start_watering_missing_plant():
    with pytest.raises(MissingReference):
        await _executor(InMemoryPlantStore()).start_watering(404)


async def test_water_on_schedule_uses_window_length():
    now = at(MONDAY, "08:10")
    plant = make_plant(last_watered=now - timedelta(hours=2), soil_moisture=50)
    schedule = make_schedule(plant)
    store = InMemoryPlantStore([plant])

    result = await _executor(store).water_on_schedule(schedule, window_for(schedule), now)

    assert result is not None
    assert result.entry.duration_seconds == 1800
    assert result.entry.moisture_after == 65
    assert result.entry.source == "schedule"
    assert result.entry.schedule_id == schedule.id


async def test_water_on_schedule_rechecks_cooldown():
    now = at(MONDAY, "08:10")
    plant = make_plant(last_watered=now - timedelta(minutes=20))
    schedule = make_schedule(plant)
    store = InMemoryPlantStore([plant])

    result = await _executor(store).water_on_schedule(schedule, window_for(schedule), now)

    assert result is None
    assert store.writes == 0


async def test_water_on_schedule_skips_inactive_plant():
    now = at(MONDAY, "08:10")
    plant = make_plant(last_watered=now - timedelta(hours=5), is_active=False)
    schedule = make_schedule(plant)
    store = InMemoryPlantStore([plant])

    assert await _executor(store).water_on_schedule(schedule, window_for(schedule), now) is None


async def test_manual_stop_and_scheduled_watering_are_serialized():
    now = at(MONDAY, "08:10")
    plant = make_plant(last_watered=now - timedelta(hours=3), soil_moisture=50)
    schedule = make_schedule(plant)
    store = InMemoryPlantStore([plant])
    executor = _executor(store)

    scheduled, manual = await asyncio.gather(
        executor.water_on_schedule(schedule, window_for(schedule), now),
        executor.stop_watering(plant.id, 30, now=now),
    )

    # Scheduled ran first, the manual stop builds on its result
    assert scheduled is not None
    assert manual.entry.moisture_before == scheduled.entry.moisture_after
    assert plant.soil_moisture == 85
    assert [e.source for e in store.history[plant.id]] == ["schedule", "manual"]


async def test_manual_stop_first_puts_schedule_into_cooldown():
    now = at(MONDAY, "08:10")
    plant = make_plant(last_watered=now - timedelta(hours=3), soil_moisture=50)
    schedule = make_schedule(plant)
    store = InMemoryPlantStore([plant])
    executor = _executor(store)

    manual, scheduled = await asyncio.gather(
        executor.stop_watering(plant.id, 30, now=now),
        executor.water_on_schedule(schedule, window_for(schedule), now),
    )

    assert manual.entry.moisture_after == 70
    assert scheduled is None
    assert len(store.history[plant.id]) == 1
