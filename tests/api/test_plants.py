from datetime import datetime, timedelta, timezone

from httpx import AsyncClient
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_watering_scheduler
from app.main import app
from app.models import Plant, WateringSchedule
from app.services.scheduler import WateringScheduler
from app.services.stores import PlantStore, ScheduleStore
from tests.fakes import MONDAY, at


async def _register_and_login(client: AsyncClient, email: str) -> dict:
    await client.post("/api/v1/auth/register", json={
        "first_name": "Grower", "email": email, "password": "testpass"
    })
    login = await client.post("/api/v1/auth/login", data={
        "username": email, "password": "testpass"
    })
    return {"Authorization": f"Bearer {login.json()['access_token']}"}


async def _create_plant(client: AsyncClient, headers: dict, **fields) -> dict:
    payload = {"name": "Cherry Tomato", "plant_type": "tomato", **fields}
    res = await client.post("/api/v1/plants", json=payload, headers=headers)
    assert res.status_code == 201
    return res.json()


async def test_create_plant_defaults(client: AsyncClient):
    headers = await _register_and_login(client, "create@example.com")
    plant = await _create_plant(client, headers)
    assert plant["name"] == "Cherry Tomato"
    assert plant["watering_interval_hours"] == 24
    assert plant["soil_moisture"] == 50
    assert plant["is_active"] is True
    assert plant["needs_water"] is False


async def test_create_plant_validation(client: AsyncClient):
    headers = await _register_and_login(client, "invalid@example.com")
    bad_type = await client.post("/api/v1/plants", json={"name": "X", "plant_type": "cactus"}, headers=headers)
    bad_interval = await client.post(
        "/api/v1/plants", json={"name": "X", "plant_type": "basil", "watering_interval_hours": 0}, headers=headers
    )
    assert bad_type.status_code == 422
    assert bad_interval.status_code == 422


async def test_list_only_own_plants(client: AsyncClient):
    alice = await _register_and_login(client, "alice.plants@example.com")
    bob = await _register_and_login(client, "bob.plants@example.com")
    await _create_plant(client, alice, name="Alice's Basil", plant_type="basil")
    await _create_plant(client, bob, name="Bob's Pepper", plant_type="pepper")

    res = await client.get("/api/v1/plants", headers=alice)
    assert res.status_code == 200
    assert [p["name"] for p in res.json()] == ["Alice's Basil"]


async def test_other_users_plant_is_not_found(client: AsyncClient):
    alice = await _register_and_login(client, "alice.private@example.com")
    bob = await _register_and_login(client, "bob.private@example.com")
    plant = await _create_plant(client, alice)

    assert (await client.get(f"/api/v1/plants/{plant['id']}", headers=bob)).status_code == 404
    assert (await client.delete(f"/api/v1/plants/{plant['id']}", headers=bob)).status_code == 404


async def test_patch_plant(client: AsyncClient):
    headers = await _register_and_login(client, "patch.plant@example.com")
    plant = await _create_plant(client, headers)
    res = await client.patch(
        f"/api/v1/plants/{plant['id']}",
        json={"name": "Roma", "watering_interval_hours": 12, "is_active": False},
        headers=headers,
    )
    assert res.status_code == 200
    data = res.json()
    assert data["name"] == "Roma"
    assert data["watering_interval_hours"] == 12
    assert data["is_active"] is False


async def test_patch_cannot_touch_watering_state(client: AsyncClient):
    headers = await _register_and_login(client, "state@example.com")
    plant = await _create_plant(client, headers)
    res = await client.patch(
        f"/api/v1/plants/{plant['id']}", json={"soil_moisture": 99}, headers=headers
    )
    assert res.status_code == 200
    assert res.json()["soil_moisture"] == 50


async def test_needs_water_flag(client: AsyncClient, db: AsyncSession):
    headers = await _register_and_login(client, "thirsty@example.com")
    plant = await _create_plant(client, headers)
    await db.execute(
        update(Plant)
        .where(Plant.id == plant["id"])
        .values(last_watered=datetime.now(timezone.utc) - timedelta(hours=25))
    )
    await db.commit()

    res = await client.get(f"/api/v1/plants/{plant['id']}", headers=headers)
    assert res.json()["needs_water"] is True


async def test_delete_plant_keeps_schedule(client: AsyncClient, db: AsyncSession):
    headers = await _register_and_login(client, "delete@example.com")
    plant = await _create_plant(client, headers)
    schedule = await client.post(
        "/api/v1/watering/schedules",
        json={"plant_id": plant["id"], "start_time": "08:00", "end_time": "08:30"},
        headers=headers,
    )

    res = await client.delete(f"/api/v1/plants/{plant['id']}", headers=headers)
    assert res.status_code == 204
    assert (await client.get(f"/api/v1/plants/{plant['id']}", headers=headers)).status_code == 404

    row = await db.scalar(select(WateringSchedule).where(WateringSchedule.id == schedule.json()["id"]))
    assert row is not None
    assert row.plant_id is None


async def test_plant_stats(client: AsyncClient):
    headers = await _register_and_login(client, "stats.plant@example.com")
    plant = await _create_plant(client, headers)

    empty = await client.get(f"/api/v1/plants/{plant['id']}/stats", headers=headers)
    assert empty.status_code == 200
    assert empty.json()["total_waterings"] == 0
    assert empty.json()["average_moisture"] == 50

    await client.post(f"/api/v1/watering/stop/{plant['id']}", json={"duration": 10}, headers=headers)
    await client.post(f"/api/v1/watering/stop/{plant['id']}", json={"duration": 20}, headers=headers)

    res = await client.get(f"/api/v1/plants/{plant['id']}/stats", headers=headers)
    data = res.json()
    assert data["total_waterings"] == 2
    assert data["average_moisture"] == 80
    assert [e["duration_seconds"] for e in data["watering_history"]] == [10, 20]
    assert [e["source"] for e in data["watering_history"]] == ["manual", "manual"]


async def test_watering_window_status(client: AsyncClient, session_factory):
    headers = await _register_and_login(client, "window@example.com")
    plant = await _create_plant(client, headers)
    schedule = await client.post(
        "/api/v1/watering/schedules",
        json={"plant_id": plant["id"], "start_time": "08:00", "end_time": "08:30", "days_of_week": [1]},
        headers=headers,
    )
    evening = await client.post(
        "/api/v1/watering/schedules",
        json={"plant_id": plant["id"], "start_time": "18:00", "end_time": "18:30", "days_of_week": [1]},
        headers=headers,
    )
    assert evening.status_code == 201

    app.dependency_overrides[get_watering_scheduler] = lambda: WateringScheduler(
        PlantStore(session_factory),
        ScheduleStore(session_factory),
        clock=lambda: at(MONDAY, "08:10"),
    )
    res = await client.get(f"/api/v1/plants/{plant['id']}/watering-window", headers=headers)

    assert res.status_code == 200
    assert res.json() == {"plant_id": plant["id"], "in_window": True, "schedule_ids": [schedule.json()["id"]]}


async def test_patch_rejects_null_for_required_fields(client: AsyncClient):
    headers = await _register_and_login(client, "nulls@example.com")
    plant = await _create_plant(client, headers)

    for field in ("name", "plant_type", "watering_interval_hours", "is_active", "temperature", "humidity"):
        res = await client.patch(f"/api/v1/plants/{plant['id']}", json={field: None}, headers=headers)
        assert res.status_code == 422, field

    unchanged = await client.get(f"/api/v1/plants/{plant['id']}", headers=headers)
    assert unchanged.json()["watering_interval_hours"] == 24


async def test_patch_clears_image_url(client: AsyncClient):
    headers = await _register_and_login(client, "image@example.com")
    plant = await _create_plant(client, headers, image_url="https://example.com/tomato.png")

    res = await client.patch(f"/api/v1/plants/{plant['id']}", json={"image_url": None}, headers=headers)

    assert res.status_code == 200
    assert res.json()["image_url"] is None


async def test_watering_window_closed_for_inactive_plant(client: AsyncClient, session_factory):
    headers = await _register_and_login(client, "window.inactive@example.com")
    plant = await _create_plant(client, headers)
    await client.post(
        "/api/v1/watering/schedules",
        json={"plant_id": plant["id"], "start_time": "08:00", "end_time": "08:30", "days_of_week": [1]},
        headers=headers,
    )
    await client.patch(f"/api/v1/plants/{plant['id']}", json={"is_active": False}, headers=headers)

    app.dependency_overrides[get_watering_scheduler] = lambda: WateringScheduler(
        PlantStore(session_factory),
        ScheduleStore(session_factory),
        clock=lambda: at(MONDAY, "08:10"),
    )
    res = await client.get(f"/api/v1/plants/{plant['id']}/watering-window", headers=headers)

    assert res.json() == {"plant_id": plant["id"], "in_window": False, "schedule_ids": []}
