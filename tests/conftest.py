import os

# Settings are read at import time; tests never touch Postgres or Redis
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.deps import get_notifier
from app.db.base import Base
from app.db.session import get_db, get_session_factory
from app.main import app
from app.models import Plant, User, WateringSchedule

from tests.fakes import RecordingNotifier


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    # File-backed SQLite so every session gets its own connection, like a real pool
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def client(session_factory, notifier):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def seed(session_factory):
    """Insert a user with one plant (and optionally one schedule); returns (plant_id, schedule_id)."""

    async def _seed(*, last_watered, soil_moisture=50, email="grower@example.com", schedule=None):
        async with session_factory() as session:
            user = await session.scalar(select(User).where(User.email == email))
            if user is None:
                user = User(first_name="Grower", email=email, hashed_password="x")
                session.add(user)
                await session.flush()
            plant = Plant(
                user_id=user.id,
                name="Basil",
                plant_type="basil",
                last_watered=last_watered,
                soil_moisture=soil_moisture,
            )
            session.add(plant)
            await session.flush()
            schedule_id = None
            if schedule is not None:
                row = WateringSchedule(user_id=user.id, plant_id=plant.id, **schedule)
                session.add(row)
                await session.flush()
                schedule_id = row.id
            await session.commit()
            return plant.id, schedule_id

    return _seed
