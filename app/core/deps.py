import asyncio
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.redis import get_redis
from app.core.security import decode_token
from app.db.session import get_db, get_session_factory
from app.models.user import User
from app.services.events import EventNotifier, RedisEventNotifier
from app.services.scheduler import WateringScheduler
from app.services.stores import PlantStore, ScheduleStore
from app.services.user_service import get_user_by_id
from app.services.watering import WateringExecutor

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

# Manual cycle triggers from any request share one lock, like the worker's ticks
_cycle_lock = asyncio.Lock()


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: AsyncSession = Depends(get_db),
) -> User:
    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token)
        if payload.get("type") != "access":
            raise credentials_exc
        user_id: str = payload.get("sub")
        if not user_id:
            raise credentials_exc
    except JWTError:
        raise credentials_exc

    user = await get_user_by_id(db, int(user_id))
    if not user or not user.is_active:
        raise credentials_exc
    return user


async def require_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    if current_user.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


async def get_notifier(redis=Depends(get_redis)) -> EventNotifier:
    return RedisEventNotifier(redis)


def get_watering_executor(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> WateringExecutor:
    return WateringExecutor(PlantStore(session_factory))


def get_watering_scheduler(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    notifier: EventNotifier = Depends(get_notifier),
    executor: WateringExecutor = Depends(get_watering_executor),
) -> WateringScheduler:
    return WateringScheduler(
        PlantStore(session_factory),
        ScheduleStore(session_factory),
        notifier,
        executor,
        cycle_lock=_cycle_lock,
    )


CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_admin)]
Notifier = Annotated[EventNotifier, Depends(get_notifier)]
Executor = Annotated[WateringExecutor, Depends(get_watering_executor)]
Scheduler = Annotated[WateringScheduler, Depends(get_watering_scheduler)]
