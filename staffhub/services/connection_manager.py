import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from fastapi import WebSocket

from staffhub.models.enums import PresenceStatus
from staffhub.schemas.websockets import WebSocketMessage
from staffhub.services import user_service
from staffhub.services.presence import PresenceRegistry

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Chat sockets grouped by user identity.

    Every socket a user opens is kept, and every one of them receives what is
    emitted to that user. Sends are best effort: a socket that fails is dropped
    and the error is logged, never raised. Losing a user's last socket that way
    announces them offline.
    """

    def __init__(
        self,
        presence: Optional[PresenceRegistry] = None,
        presence_store: Optional[Callable[[int, PresenceStatus], None]] = None,
    ):
        self.active_connections: Dict[int, List[WebSocket]] = {}
        # Track last activity timestamp for each websocket: {user_id: {websocket_id: timestamp}}
        self.last_activity: Dict[int, Dict[int, float]] = {}
        self.presence = presence if presence is not None else PresenceRegistry()
        # Persists presence changes, e.g. to users.presence_status
        self.presence_store = presence_store

    async def connect(self, websocket: WebSocket, user_id: int, accept: bool = True) -> bool:
        """Register a socket. Returns True if the user just came online."""
        if accept:
            await websocket.accept()
        self.active_connections.setdefault(user_id, []).append(websocket)
        self.last_activity.setdefault(user_id, {})[id(websocket)] = time.time()

        came_online = self.presence.register(user_id)
        logger.info(f"User {user_id} connected. Sockets for user: {len(self.active_connections[user_id])}")
        return came_online

    def disconnect(self, websocket: WebSocket, user_id: int) -> bool:
        """Forget a socket. Returns True if the user has no sockets left."""
        sockets = self.active_connections.get(user_id)
        if not sockets or websocket not in sockets:
            logger.debug(f"Socket for user {user_id} already removed")
            return False

        sockets.remove(websocket)
        self.last_activity.get(user_id, {}).pop(id(websocket), None)
        if not sockets:
            del self.active_connections[user_id]
            self.last_activity.pop(user_id, None)

        went_offline = self.presence.unregister(user_id)
        logger.info(f"User {user_id} disconnected. Remaining sockets: {len(self.active_connections.get(user_id, []))}")
        return went_offline

    async def send_to_user(self, user_id: int, message: WebSocketMessage) -> int:
        """Push ``message`` to every socket of ``user_id``. Returns how many sockets got it."""
        sockets = list(self.active_connections.get(user_id, []))
        if not sockets:
            logger.debug(f"No active sockets for user {user_id}; '{message.type}' not pushed")
            return 0

        text = message.model_dump_json()
        delivered = 0
        failed: List[WebSocket] = []
        for websocket in sockets:
            try:
                await websocket.send_text(text)
                delivered += 1
            except Exception as e:
                logger.warning(f"Failed to push '{message.type}' to user {user_id}: {e}")
                failed.append(websocket)

        # Clean up dead connections after iteration
        went_offline = False
        for websocket in failed:
            went_offline = self.disconnect(websocket, user_id) or went_offline
        if went_offline:
            await self.announce_presence(user_id, PresenceStatus.OFFLINE)

        return delivered

    async def send_to_users(self, user_ids: Iterable[int], message: WebSocketMessage) -> int:
        delivered = 0
        for user_id in sorted(set(user_ids)):
            delivered += await self.send_to_user(user_id, message)
        return delivered

    async def broadcast(self, message: WebSocketMessage) -> int:
        return await self.send_to_users(list(self.active_connections.keys()), message)

    async def broadcast_presence(self, user_id: int, status: PresenceStatus):
        await self.broadcast(WebSocketMessage(
            type="user_status_update",
            payload={"user_id": user_id, "status": status.value},
        ))
        await self.broadcast(WebSocketMessage(type="online_users", payload=self.presence.snapshot()))

    async def announce_presence(self, user_id: int, status: PresenceStatus):
        """Store a presence change, then tell every connected user about it."""
        if self.presence_store is not None:
            self.presence_store(user_id, status)
        await self.broadcast_presence(user_id, status)

    async def disconnect_all(self):
        logger.info("Disconnecting all chat sockets...")
        for user_id in list(self.active_connections.keys()):
            for websocket in list(self.active_connections.get(user_id, [])):
                try:
                    await websocket.close(code=1000)
                except Exception as e:
                    logger.debug(f"Error closing websocket for user {user_id}: {e}")
        self.active_connections.clear()
        self.last_activity.clear()
        self.presence.clear()
        logger.info("All chat sockets disconnected.")

    def is_connected(self, user_id: int) -> bool:
        return bool(self.active_connections.get(user_id))

    def update_activity(self, user_id: int, websocket: WebSocket):
        """Update the last activity timestamp for a specific websocket connection"""
        if user_id in self.last_activity:
            self.last_activity[user_id][id(websocket)] = time.time()

    def get_inactive_connections(self, timeout: int) -> List[Tuple[int, WebSocket, float]]:
        """
        Returns list of (user_id, websocket, idle_time) for sockets idle longer
        than ``timeout`` seconds.
        """
        current_time = time.time()
        inactive = []

        for user_id, sockets in list(self.active_connections.items()):
            activity = self.last_activity.get(user_id, {})
            for websocket in sockets:
                idle_time = current_time - activity.get(id(websocket), current_time)
                if idle_time > timeout:
                    inactive.append((user_id, websocket, idle_time))

        return inactive


manager = ConnectionManager(presence_store=user_service.store_presence)
