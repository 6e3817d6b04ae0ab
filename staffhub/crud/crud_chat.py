from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from staffhub.models import (
    Conversation,
    ConversationMember,
    ConversationType,
    Message,
    MessageStatus,
    make_dm_key,
)
from staffhub.schemas import chat as chat_schema

# Statuses a message may be advanced from, per target status
_ADVANCEABLE_FROM = {
    MessageStatus.DELIVERED: [MessageStatus.SENT],
    MessageStatus.SEEN: [MessageStatus.SENT, MessageStatus.DELIVERED],
}


# CRUD for Conversation
def get_conversation(db: Session, conversation_id: int) -> Optional[Conversation]:
    return db.query(Conversation).options(
        selectinload(Conversation.members).selectinload(ConversationMember.user)
    ).filter(Conversation.id == conversation_id).first()


def get_dm_conversation(db: Session, user_a_id: int, user_b_id: int) -> Optional[Conversation]:
    return db.query(Conversation).options(
        selectinload(Conversation.members).selectinload(ConversationMember.user)
    ).filter(Conversation.dm_key == make_dm_key(user_a_id, user_b_id)).first()


def get_team_conversation(db: Session, team_id: int) -> Optional[Conversation]:
    return db.query(Conversation).options(
        selectinload(Conversation.members).selectinload(ConversationMember.user)
    ).filter(
        Conversation.conversation_type == ConversationType.TEAM,
        Conversation.team_id == team_id,
    ).first()


def create_dm_conversation(db: Session, user_a_id: int, user_b_id: int) -> Conversation:
    """Insert a dm row plus both memberships in one commit. Raises IntegrityError if the pair exists."""
    db_conversation = Conversation(
        conversation_type=ConversationType.DM,
        dm_key=make_dm_key(user_a_id, user_b_id),
        last_message="",
        last_message_at=None,
    )
    db_conversation.members = [
        ConversationMember(user_id=user_a_id),
        ConversationMember(user_id=user_b_id),
    ]
    db.add(db_conversation)
    db.commit()
    db.refresh(db_conversation)
    return db_conversation


def create_team_conversation(db: Session, team_id: int, member_ids: Iterable[int]) -> Conversation:
    """Insert a team row with a snapshot of ``member_ids``. Raises IntegrityError if the team has one."""
    db_conversation = Conversation(
        conversation_type=ConversationType.TEAM,
        team_id=team_id,
        last_message="",
        last_message_at=None,
    )
    db_conversation.members = [ConversationMember(user_id=user_id) for user_id in sorted(set(member_ids))]
    db.add(db_conversation)
    db.commit()
    db.refresh(db_conversation)
    return db_conversation


def replace_conversation_members(db: Session, conversation: Conversation, member_ids: Iterable[int]) -> Conversation:
    wanted = set(member_ids)
    current = {member.user_id: member for member in conversation.members}

    for user_id, member in current.items():
        if user_id not in wanted:
            conversation.members.remove(member)
    for user_id in sorted(wanted - set(current)):
        conversation.members.append(ConversationMember(user_id=user_id))

    db.commit()
    db.refresh(conversation)
    return conversation


def get_user_conversations(db: Session, user_id: int) -> List[Conversation]:
    return (
        db.query(Conversation)
        .join(ConversationMember, ConversationMember.conversation_id == Conversation.id)
        .filter(ConversationMember.user_id == user_id)
        .options(selectinload(Conversation.members).selectinload(ConversationMember.user))
        .order_by(
            Conversation.last_message_at.desc().nulls_last(),
            Conversation.updated_at.desc(),
            Conversation.id.desc(),
        )
        .all()
    )


def get_conversation_member_ids(db: Session, conversation_id: int) -> List[int]:
    rows = db.query(ConversationMember.user_id).filter(
        ConversationMember.conversation_id == conversation_id
    ).order_by(ConversationMember.user_id).all()
    return [row.user_id for row in rows]


def update_conversation_summary(db: Session, conversation_id: int, last_message: str, last_message_at: datetime) -> None:
    db.query(Conversation).filter(Conversation.id == conversation_id).update(
        {"last_message": last_message, "last_message_at": last_message_at},
        synchronize_session=False,
    )
    db.commit()


# CRUD for Message
def create_message(
    db: Session,
    conversation_id: int,
    sender_id: int,
    text: str,
    attachment: Optional[chat_schema.ChatAttachment] = None,
) -> Message:
    db_message = Message(
        conversation_id=conversation_id,
        sender_id=sender_id,
        text=text or "",
        status=MessageStatus.SENT,
    )
    if attachment is not None:
        db_message.file_url = attachment.file_url
        db_message.file_name = attachment.file_name
        db_message.file_type = attachment.file_type
        db_message.file_size = attachment.file_size
    db.add(db_message)
    db.commit()
    db.refresh(db_message)
    return db_message


def get_message(db: Session, message_id: int) -> Optional[Message]:
    return db.query(Message).filter(Message.id == message_id).first()


def get_conversation_messages(db: Session, conversation_id: int, skip: int = 0, limit: int = 100) -> List[Message]:
    return db.query(Message).filter(
        Message.conversation_id == conversation_id
    ).order_by(Message.created_at.asc(), Message.id.asc()).offset(skip).limit(limit).all()


def advance_message_status(
    db: Session,
    conversation_id: int,
    recipient_id: int,
    target: MessageStatus,
    message_ids: Optional[Iterable[int]] = None,
) -> List[int]:
    """
    Move messages not authored by ``recipient_id`` forward to ``target``.

    Only statuses strictly behind ``target`` are touched, so the update can
    never regress a message. Returns the ids that were advanced.
    """
    sources = _ADVANCEABLE_FROM.get(target)
    if not sources:
        return []

    query = db.query(Message.id).filter(
        Message.conversation_id == conversation_id,
        Message.sender_id != recipient_id,
        Message.status.in_(sources),
    )
    if message_ids is not None:
        message_ids = list(message_ids)
        if not message_ids:
            return []
        query = query.filter(Message.id.in_(message_ids))

    candidate_ids = [row.id for row in query.order_by(Message.id).all()]
    if not candidate_ids:
        return []

    db.query(Message).filter(
        Message.id.in_(candidate_ids),
        Message.status.in_(sources),
    ).update({"status": target}, synchronize_session=False)
    db.commit()
    return candidate_ids
