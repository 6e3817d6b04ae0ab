"""
Real-time fan-out for chat.

Everything here runs after the state change has been committed. Pushes are
best effort: offline users simply miss the event and pick the state up from
the pull endpoints.
"""
import logging
from typing import Iterable

from staffhub.models import Conversation, Message
from staffhub.schemas import chat as chat_schema
from staffhub.schemas.websockets import WebSocketMessage
from staffhub.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


async def emit_new_message(manager: ConnectionManager, message: Message, member_ids: Iterable[int]) -> int:
    """Push a new message to every member except its sender."""
    payload = chat_schema.Message.model_validate(message).model_dump(mode="json")
    recipients = [user_id for user_id in member_ids if user_id != message.sender_id]
    delivered = await manager.send_to_users(recipients, WebSocketMessage(type="new_message", payload=payload))
    logger.debug(f"Message {message.id} pushed to {delivered} sockets ({len(recipients)} recipients)")
    return delivered


async def emit_status_change(manager: ConnectionManager, change) -> int:
    """Tell every member, original senders included, that statuses moved."""
    if not change:
        return 0
    update = chat_schema.MessageStatusUpdate(
        conversation_id=change.conversation_id,
        message_ids=change.message_ids,
        status=change.status,
    )
    return await manager.send_to_users(
        change.member_ids,
        WebSocketMessage(type="message_status_update", payload=update.model_dump(mode="json")),
    )


async def emit_unread_count(manager: ConnectionManager, user_id: int, unread_count: int) -> int:
    return await manager.send_to_user(
        user_id,
        WebSocketMessage(type="unread_count_update", payload={"user_id": user_id, "unread_count": unread_count}),
    )


async def emit_conversation_updated(manager: ConnectionManager, conversation: Conversation, user_ids: Iterable[int]) -> int:
    payload = chat_schema.Conversation.model_validate(conversation).model_dump(mode="json")
    return await manager.send_to_users(user_ids, WebSocketMessage(type="conversation_updated", payload=payload))


async def emit_typing(manager: ConnectionManager, event_type: str, conversation_id: int, sender_id: int, member_ids: Iterable[int]) -> int:
    recipients = [user_id for user_id in member_ids if user_id != sender_id]
    return await manager.send_to_users(
        recipients,
        WebSocketMessage(type=event_type, payload={"conversation_id": conversation_id, "sender_id": sender_id}),
    )
