import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.redis import get_redis
from app.core.security import decode_token
from app.db.session import get_db
from app.services.events import user_channel
from app.services.user_service import get_user_by_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.websocket("/ws")
async def user_events(
    websocket: WebSocket,
    token: str,
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    """Relay the authenticated user's event channel. No replay: events published while disconnected are lost."""
    try:
        payload = decode_token(token)
        if payload.get("type") != "access":
            raise JWTError("not an access token")
        user_id = int(payload["sub"])
    except (JWTError, KeyError, ValueError):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user = await get_user_by_id(db, user_id)
    if not user or not user.is_active:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    pubsub = redis.pubsub()
    await pubsub.subscribe(user_channel(user_id))
    logger.info("events: user %d connected", user_id)

    async def relay() -> None:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            data = message["data"]
            await websocket.send_text(data.decode() if isinstance(data, bytes) else data)

    async def watch_client() -> None:
        # Clients only listen; reading is how a disconnect is noticed
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            return

    tasks = {asyncio.create_task(relay()), asyncio.create_task(watch_client())}
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.warning("events: relay for user %d ended: %s", user_id, task.exception())
    finally:
        await pubsub.unsubscribe(user_channel(user_id))
        await pubsub.aclose()
        logger.info("events: user %d disconnected", user_id)
