from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from staffhub.core.config import settings
from staffhub.models import Message, Notification, User


def create_notification(
    db: Session,
    user_id: int,
    notification_type: str,
    title: str,
    message: str,
    related_message_id: Optional[int] = None,
    related_conversation_id: Optional[int] = None,
    actor_id: Optional[int] = None
) -> Notification:
    """Create a new notification"""
    notification = Notification(
        user_id=user_id,
        notification_type=notification_type,
        title=title,
        message=message,
        related_message_id=related_message_id,
        related_conversation_id=related_conversation_id,
        actor_id=actor_id,
        is_read=False,
        is_deleted=False,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def create_notifications(
    db: Session,
    user_ids: List[int],
    notification_type: str,
    title: str,
    message: str,
    actor_id: Optional[int] = None
) -> int:
    """Create the same notification for many users in one commit"""
    db.add_all([
        Notification(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            actor_id=actor_id,
            is_read=False,
            is_deleted=False,
        )
        for user_id in user_ids
    ])
    db.commit()
    return len(user_ids)


def _visible(db: Session, user_id: int):
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_deleted.is_(False),
    )


def get_user_notifications(
    db: Session,
    user_id: int,
    skip: int = 0,
    limit: int = 50,
    unread_only: bool = False
) -> List[Notification]:
    """Get notifications for a user"""
    query = _visible(db, user_id)

    if unread_only:
        query = query.filter(Notification.is_read.is_(False))

    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(skip).limit(limit).all()


def get_unread_count(db: Session, user_id: int) -> int:
    """Get count of unread notifications for a user"""
    return _visible(db, user_id).filter(Notification.is_read.is_(False)).count()


def mark_notification_as_read(db: Session, notification_id: int, user_id: int) -> bool:
    """Mark a notification as read"""
    notification = _visible(db, user_id).filter(Notification.id == notification_id).first()

    if notification:
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            db.commit()
        return True
    return False


def mark_all_as_read(db: Session, user_id: int) -> int:
    """Mark all notifications as read for a user. Returns count of updated notifications."""
    count = _visible(db, user_id).filter(Notification.is_read.is_(False)).update({
        "is_read": True,
        "read_at": datetime.now(timezone.utc)
    }, synchronize_session=False)
    db.commit()
    return count


def delete_notification(db: Session, notification_id: int, user_id: int) -> bool:
    """Soft delete: hidden from lists and counts, kept for audit"""
    count = _visible(db, user_id).filter(Notification.id == notification_id).update(
        {"is_deleted": True}, synchronize_session=False
    )
    db.commit()
    return count > 0


def make_preview(text: str, limit: int = None) -> str:
    limit = limit or settings.MESSAGE_PREVIEW_LENGTH
    return text[:limit] + "..." if len(text) > limit else text


def create_message_notification(db: Session, receiver_id: int, message: Message, actor: User) -> Notification:
    """Notification for the receiver of a direct message"""
    if message.text:
        preview = make_preview(message.text)
    else:
        preview = f"Sent an attachment: {message.file_name}"

    return create_notification(
        db=db,
        user_id=receiver_id,
        notification_type="message",
        title=f"New message from {actor.name}",
        message=preview,
        related_message_id=message.id,
        related_conversation_id=message.conversation_id,
        actor_id=actor.id,
    )
