import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from staffhub.core.auth import get_user_from_token
from staffhub.core.database import SessionLocal
from staffhub.core.dependencies import get_connection_manager
from staffhub.core.exceptions import ChatError, InvalidInput, ServerError
from staffhub.models.enums import PresenceStatus
from staffhub.schemas.websockets import InboundFrame, WebSocketMessage
from staffhub.services import chat_service, user_service
from staffhub.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

router = APIRouter()


def authenticate_websocket_user(token: Optional[str]) -> Optional[int]:
    """Resolve the token to a user id without holding a DB session open. None if auth fails."""
    if not token:
        return None
    db = SessionLocal()
    try:
        return get_user_from_token(db, token).id
    except HTTPException:
        return None
    finally:
        db.close()


def _frame_id(payload: dict, key: str, required: bool = True) -> Optional[int]:
    value = payload.get(key)
    if value is None and not required:
        return None
    # bool is an int subclass, so check it first
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{key} must be an integer")
    return value


async def _handle_frame(manager: ConnectionManager, websocket: WebSocket, user_id: int, frame: InboundFrame):
    if frame.type == "ping":
        await websocket.send_text(WebSocketMessage(type="pong").model_dump_json())
        return

    if frame.type == "presence":
        try:
            presence = PresenceStatus(frame.payload.get("status"))
        except ValueError:
            raise InvalidInput("status must be one of online, away, busy")
        if manager.presence.set_status(user_id, presence):
            await manager.announce_presence(user_id, presence)
        return

    db = SessionLocal()
    try:
        user = user_service.get_user(db, user_id)
        if user is None or not user.is_active:
            raise InvalidInput("User is no longer active")

        if frame.type in ("typing", "stop_typing"):
            try:
                await chat_service.relay_typing(
                    db, manager, user, _frame_id(frame.payload, "conversation_id"), stopped=frame.type == "stop_typing"
                )
            except ChatError as e:
                logger.debug(f"Dropped {frame.type} from user {user_id}: {e.detail}")
        elif frame.type == "mark_delivered":
            await chat_service.mark_delivered(db, manager, user, _frame_id(frame.payload, "message_id"))
        elif frame.type == "mark_seen":
            await chat_service.mark_seen(
                db,
                manager,
                user,
                conversation_id=_frame_id(frame.payload, "conversation_id", required=False),
                message_id=_frame_id(frame.payload, "message_id", required=False),
            )
        else:
            raise InvalidInput(f"Unknown frame type '{frame.type}'")
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Storage error while handling '{frame.type}' from user {user_id}")
        raise ServerError()
    finally:
        db.close()


async def _send_error(websocket: WebSocket, error: ChatError):
    await websocket.send_text(WebSocketMessage(
        type="error",
        payload={"status_code": error.status_code, "detail": error.detail},
    ).model_dump_json())


@router.websocket("/chat")
async def chat_websocket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    user_id = authenticate_websocket_user(token)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Could not validate credentials")
        return

    came_online = await manager.connect(websocket, user_id)
    if came_online:
        await manager.announce_presence(user_id, PresenceStatus.ONLINE)
    else:
        await manager.send_to_user(user_id, WebSocketMessage(type="online_users", payload=manager.presence.snapshot()))

    try:
        while True:
            data = await websocket.receive_text()
            manager.update_activity(user_id, websocket)

            try:
                frame = InboundFrame.model_validate(json.loads(data))
            except (json.JSONDecodeError, ValidationError):
                logger.debug(f"Received malformed frame from user {user_id}: {data[:100]}")
                await _send_error(websocket, InvalidInput("Malformed frame"))
                continue

            try:
                await _handle_frame(manager, websocket, user_id, frame)
            except ChatError as e:
                await _send_error(websocket, e)

    except WebSocketDisconnect:
        logger.info(f"User {user_id} closed chat socket")
    finally:
        if manager.disconnect(websocket, user_id):
            await manager.announce_presence(user_id, PresenceStatus.OFFLINE)
