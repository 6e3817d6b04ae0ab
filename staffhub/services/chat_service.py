"""
Chat operations as exposed to request handlers and the chat socket.

Each operation runs permission checks and persistence first and fans out
second, so a failed push never loses state.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from staffhub.core.exceptions import InvalidInput
from staffhub.crud import crud_notification
from staffhub.models import Conversation, ConversationType, Message, User
from staffhub.schemas import chat as chat_schema
from staffhub.services import chat_events, chat_permission_service, conversation_service, message_service
from staffhub.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


def list_allowed_counterparts(db: Session, user: User) -> chat_schema.AllowedCounterparts:
    allowed_users, allowed_teams = chat_permission_service.list_allowed_counterparts(db, user)
    return chat_schema.AllowedCounterparts(
        user=chat_schema.UserSummary.model_validate(user),
        allowed_users=[chat_schema.UserSummary.model_validate(u) for u in allowed_users],
        allowed_teams=[chat_schema.TeamSummary.model_validate(t) for t in allowed_teams],
    )


def open_direct_conversation(db: Session, user: User, target_user_id: int) -> Conversation:
    return conversation_service.get_or_create_direct(db, user, target_user_id)


def open_team_conversation(db: Session, user: User, team_id: int) -> Conversation:
    return conversation_service.get_or_create_team(db, user, team_id)


def list_my_conversations(db: Session, user: User) -> List[Conversation]:
    return conversation_service.list_for_user(db, user)


async def send_message(
    db: Session,
    manager: ConnectionManager,
    user: User,
    conversation_id: int,
    text: Optional[str] = None,
    attachment: Optional[chat_schema.ChatAttachment] = None,
) -> Message:
    message, conversation = message_service.send(db, user, conversation_id, text, attachment)
    member_ids = conversation.member_ids

    await chat_events.emit_new_message(manager, message, member_ids)

    if conversation.conversation_type == ConversationType.DM:
        for receiver_id in member_ids:
            if receiver_id == user.id:
                continue
            crud_notification.create_message_notification(db, receiver_id, message, user)
            unread_count = crud_notification.get_unread_count(db, receiver_id)
            await chat_events.emit_unread_count(manager, receiver_id, unread_count)

    return message


async def list_conversation_messages(
    db: Session,
    manager: ConnectionManager,
    user: User,
    conversation_id: int,
    skip: int = 0,
    limit: int = 100,
) -> List[Message]:
    messages, change = message_service.list_messages(db, user, conversation_id, skip=skip, limit=limit)
    await chat_events.emit_status_change(manager, change)
    return messages


async def mark_delivered(db: Session, manager: ConnectionManager, user: User, message_id: int):
    change = message_service.mark_delivered(db, user, message_id)
    await chat_events.emit_status_change(manager, change)
    return change


async def mark_seen(
    db: Session,
    manager: ConnectionManager,
    user: User,
    conversation_id: Optional[int] = None,
    message_id: Optional[int] = None,
):
    """Mark one message, or everything in a conversation, as seen by ``user``."""
    if message_id is not None:
        change = message_service.mark_seen(db, user, message_id)
    elif conversation_id is not None:
        change = message_service.mark_conversation_seen(db, user, conversation_id)
    else:
        raise InvalidInput("conversation_id or message_id is required")

    await chat_events.emit_status_change(manager, change)
    return change


async def resync_team_conversation(db: Session, manager: ConnectionManager, user: User, conversation_id: int) -> Conversation:
    conversation, previous_member_ids = conversation_service.resync_team_conversation(db, user, conversation_id)
    await chat_events.emit_conversation_updated(
        manager, conversation, previous_member_ids | set(conversation.member_ids)
    )
    return conversation


async def relay_typing(db: Session, manager: ConnectionManager, user: User, conversation_id: int, stopped: bool = False) -> int:
    conversation = conversation_service.get_conversation_for_member(db, user.id, conversation_id)
    event_type = "stop_typing" if stopped else "typing"
    return await chat_events.emit_typing(manager, event_type, conversation.id, user.id, conversation.member_ids)
