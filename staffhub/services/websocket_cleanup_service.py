"""
WebSocket Session Cleanup Service

Periodically closes chat sockets that have not sent a frame (ping included)
within ``WS_SESSION_TIMEOUT`` seconds, and tells everyone when that takes a
user offline.
"""

import logging

from starlette.websockets import WebSocketState

from staffhub.core.config import settings
from staffhub.models.enums import PresenceStatus
from staffhub.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


async def cleanup_inactive_sessions(manager: ConnectionManager, timeout: int = None):
    """
    Called by APScheduler every WS_CLEANUP_INTERVAL seconds.
    """
    timeout = timeout if timeout is not None else settings.WS_SESSION_TIMEOUT
    try:
        inactive_connections = manager.get_inactive_connections(timeout)

        if not inactive_connections:
            logger.debug("No inactive connections to clean up")
            return 0

        logger.info(f"Found {len(inactive_connections)} inactive connections to clean up")

        for user_id, websocket, idle_time in inactive_connections:
            logger.info(f"Closing inactive socket for user {user_id} (idle for {idle_time:.0f}s)")
            try:
                if getattr(websocket, "client_state", WebSocketState.CONNECTED) == WebSocketState.CONNECTED:
                    await websocket.close(
                        code=1000,
                        reason=f"Session timeout after {idle_time:.0f}s of inactivity"
                    )
            except Exception as close_error:
                # Already closed on the client side
                logger.debug(f"WebSocket already closed for user {user_id}: {close_error}")

            # Clean up from manager (do this even if close failed)
            if manager.disconnect(websocket, user_id):
                await manager.announce_presence(user_id, PresenceStatus.OFFLINE)

        logger.info(f"Cleanup complete. Closed {len(inactive_connections)} inactive connections")
        return len(inactive_connections)

    except Exception as e:
        logger.error(f"Error in cleanup_inactive_sessions: {e}")
        return 0
