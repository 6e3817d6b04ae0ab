"""
Message pipeline: persist, advance delivery status, keep the conversation
summary current.

Status only moves forward (sent -> delivered -> seen) and only for messages
the acting user did not write. Functions that change statuses return a
``StatusChange`` so callers can fan the update out.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from staffhub.core.config import settings
from staffhub.core.exceptions import InvalidInput, NotAMember, NotFound
from staffhub.crud import crud_chat
from staffhub.models import Conversation, Message, MessageStatus, User
from staffhub.schemas import chat as chat_schema
from staffhub.services import conversation_service

logger = logging.getLogger(__name__)


@dataclass
class StatusChange:
    conversation_id: int
    status: MessageStatus
    message_ids: List[int] = field(default_factory=list)
    member_ids: List[int] = field(default_factory=list)

    def __bool__(self):
        return bool(self.message_ids)


def _summary_text(text: str, attachment: Optional[chat_schema.ChatAttachment]) -> str:
    if text:
        return text
    return f"[attachment] {attachment.file_name}"


def send(
    db: Session,
    sender: User,
    conversation_id: int,
    text: Optional[str] = None,
    attachment: Optional[chat_schema.ChatAttachment] = None,
) -> Tuple[Message, Conversation]:
    """Persist a message. Returns the message and its conversation (for fan-out)."""
    text = (text or "").strip()
    if attachment is not None and not (attachment.file_url.strip() and attachment.file_name.strip()):
        raise InvalidInput("Attachment needs a file_url and file_name")
    if not text and attachment is None:
        raise InvalidInput("Message text or attachment is required")
    if len(text) > settings.MAX_MESSAGE_LENGTH:
        raise InvalidInput(f"Message text exceeds {settings.MAX_MESSAGE_LENGTH} characters")

    conversation = conversation_service.get_conversation_for_member(db, sender.id, conversation_id)
    conversation_service.check_can_post(db, sender.id, conversation)

    message = crud_chat.create_message(db, conversation.id, sender.id, text, attachment)
    # Separate write: a concurrent send may briefly leave an older summary in place
    crud_chat.update_conversation_summary(
        db, conversation.id, _summary_text(text, attachment), message.created_at
    )
    logger.info(f"Message {message.id} sent by user {sender.id} in conversation {conversation.id}")
    return message, conversation


def _message_for_member(db: Session, user_id: int, message_id: int) -> Tuple[Message, List[int]]:
    if message_id is None:
        raise InvalidInput("message_id is required")
    message = crud_chat.get_message(db, message_id)
    if message is None:
        raise NotFound("Message not found")
    member_ids = crud_chat.get_conversation_member_ids(db, message.conversation_id)
    if user_id not in member_ids:
        raise NotAMember()
    return message, member_ids


def mark_delivered(db: Session, recipient: User, message_id: int) -> StatusChange:
    """sent -> delivered. A no-op for delivered/seen messages and the sender's own."""
    message, member_ids = _message_for_member(db, recipient.id, message_id)
    advanced = crud_chat.advance_message_status(
        db, message.conversation_id, recipient.id, MessageStatus.DELIVERED, [message.id]
    )
    return StatusChange(message.conversation_id, MessageStatus.DELIVERED, advanced, member_ids)


def mark_seen(db: Session, recipient: User, message_id: int) -> StatusChange:
    message, member_ids = _message_for_member(db, recipient.id, message_id)
    advanced = crud_chat.advance_message_status(
        db, message.conversation_id, recipient.id, MessageStatus.SEEN, [message.id]
    )
    return StatusChange(message.conversation_id, MessageStatus.SEEN, advanced, member_ids)


def mark_conversation_seen(db: Session, recipient: User, conversation_id: int) -> StatusChange:
    """Every message in the conversation not written by ``recipient`` becomes seen."""
    conversation = conversation_service.get_conversation_for_member(db, recipient.id, conversation_id)
    advanced = crud_chat.advance_message_status(db, conversation.id, recipient.id, MessageStatus.SEEN)
    if advanced:
        logger.debug(f"User {recipient.id} saw {len(advanced)} messages in conversation {conversation.id}")
    return StatusChange(conversation.id, MessageStatus.SEEN, advanced, conversation.member_ids)


def list_messages(
    db: Session, requester: User, conversation_id: int, skip: int = 0, limit: int = 100
) -> Tuple[List[Message], StatusChange]:
    """
    Messages in creation order. Reading them counts as delivery: anything the
    requester did not write that is still ``sent`` becomes ``delivered``.
    """
    conversation = conversation_service.get_conversation_for_member(db, requester.id, conversation_id)
    advanced = crud_chat.advance_message_status(db, conversation.id, requester.id, MessageStatus.DELIVERED)
    messages = crud_chat.get_conversation_messages(db, conversation.id, skip=skip, limit=limit)
    return messages, StatusChange(conversation.id, MessageStatus.DELIVERED, advanced, conversation.member_ids)
