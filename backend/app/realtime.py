"""
Per-user publish/subscribe channel for live dashboards.

Every saved activity is pushed to the WebSocket connections its owner has
open. Delivery is best effort: nothing is queued for absent subscribers.
"""
import logging
import uuid
from collections import defaultdict
from typing import Any, Dict, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

ACTIVITY_UPDATE_EVENT = "activityUpdate"


class ActivityChannel:
    """Tracks open WebSocket connections per user and fans events out to them."""

    def __init__(self):
        self._connections: Dict[uuid.UUID, Set[WebSocket]] = defaultdict(set)

    async def connect(self, user_id: uuid.UUID, websocket: WebSocket):
        await websocket.accept()
        self._connections[user_id].add(websocket)
        logger.info(f"User {user_id} joined the activity channel ({len(self._connections[user_id])} connection(s))")

    def disconnect(self, user_id: uuid.UUID, websocket: WebSocket):
        connections = self._connections.get(user_id)
        if not connections:
            return
        connections.discard(websocket)
        if not connections:
            del self._connections[user_id]
        logger.info(f"User {user_id} left the activity channel")

    def subscriber_count(self, user_id: uuid.UUID) -> int:
        return len(self._connections.get(user_id, ()))

    async def publish(self, user_id: uuid.UUID, event: str, data: Any) -> int:
        """Sends `{event, data}` to every connection of `user_id`; returns how many received it."""
        message = {"event": event, "data": jsonable_encoder(data)}
        delivered = 0
        for websocket in list(self._connections.get(user_id, ())):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping dead activity channel connection for user {user_id}: {e}")
                self.disconnect(user_id, websocket)
        return delivered


# Global channel instance
activity_channel = ActivityChannel()
