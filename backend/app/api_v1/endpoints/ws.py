import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from backend.app.api_v1.auth import user_from_token
from backend.app.core.db import AsyncSessionLocal
from backend.app.realtime import activity_channel

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/activity")
async def activity_updates(websocket: WebSocket, token: Optional[str] = Query(None)):
    """
    Live `activityUpdate` events for the authenticated user.
    Browsers cannot set headers on a WebSocket handshake, so the JWT travels as `?token=`.
    """
    async with AsyncSessionLocal() as db:
        try:
            user = await user_from_token(db, token)
        except HTTPException:
            logger.warning("Rejected activity channel connection with invalid credentials")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    await activity_channel.connect(user.id, websocket)
    try:
        while True:
            # Inbound messages are ignored; receiving keeps the disconnect observable.
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        activity_channel.disconnect(user.id, websocket)
