from datetime import datetime, timezone
from typing import Optional

from jose import JWTError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import decode_token, hash_password, verify_password
from app.models.plant import Plant
from app.models.schedule import WateringSchedule
from app.models.user import User
from app.schemas.user import UserCreate, UserStats, UserUpdate
from app.services.watering_windows import find_overdue


async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def create_user(db: AsyncSession, data: UserCreate, role: str = "user") -> User:
    user = User(
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        hashed_password=hash_password(data.password),
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def update_user(db: AsyncSession, user: User, data: UserUpdate) -> User:
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    await db.commit()
    await db.refresh(user)
    return user


async def record_login(db: AsyncSession, user: User) -> None:
    user.last_login = datetime.now(timezone.utc)
    await db.commit()


async def get_user_stats(db: AsyncSession, user_id: int) -> UserStats:
    plants_result = await db.execute(
        select(Plant).where(Plant.user_id == user_id, Plant.is_active.is_(True))
    )
    plants = plants_result.scalars().all()

    schedules_count = await db.scalar(
        select(func.count(WateringSchedule.id)).where(
            WateringSchedule.user_id == user_id,
            WateringSchedule.is_active.is_(True),
        )
    )

    overdue = find_overdue(plants, datetime.now(timezone.utc))

    return UserStats(
        plants=len(plants),
        active_schedules=schedules_count or 0,
        plants_needing_water=len(overdue),
    )


async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """The user owning these credentials, or None. Disabled accounts are returned; callers decide."""
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.hashed_password):
        return None
    return user


async def user_from_refresh_token(db: AsyncSession, token: str) -> Optional[User]:
    """Resolve a refresh token to an active user; None for anything unusable."""
    try:
        payload = decode_token(token)
        if payload.get("type") != "refresh":
            return None
        user_id = int(payload["sub"])
    except (JWTError, KeyError, ValueError):
        return None
    user = await get_user_by_id(db, user_id)
    if user is None or not user.is_active:
        return None
    return user
