from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from staffhub.core.dependencies import get_connection_manager, get_current_user, get_db, require_roles
from staffhub.crud import crud_notification
from staffhub.models.enums import UserRole
from staffhub.models.user import User
from staffhub.schemas import notification as notification_schema
from staffhub.services import chat_events, user_service
from staffhub.services.connection_manager import ConnectionManager

router = APIRouter()


async def _push_unread_count(db: Session, manager: ConnectionManager, user_id: int):
    count = crud_notification.get_unread_count(db=db, user_id=user_id)
    await chat_events.emit_unread_count(manager, user_id, count)


@router.get("/", response_model=List[notification_schema.Notification])
def get_notifications(
    skip: int = 0,
    limit: int = 50,
    unread_only: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get notifications for the current user"""
    return crud_notification.get_user_notifications(
        db=db,
        user_id=current_user.id,
        skip=skip,
        limit=limit,
        unread_only=unread_only
    )


@router.get("/unread-count", response_model=notification_schema.NotificationCount)
def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get count of unread notifications"""
    count = crud_notification.get_unread_count(db=db, user_id=current_user.id)
    return {"unread_count": count}


@router.patch("/mark-all-read")
async def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Mark all notifications as read"""
    count = crud_notification.mark_all_as_read(db=db, user_id=current_user.id)
    if count > 0:
        await _push_unread_count(db, manager, current_user.id)
    return {"updated_count": count}


@router.post("/", response_model=notification_schema.Notification, status_code=status.HTTP_201_CREATED)
async def create_notification(
    notification_in: notification_schema.NotificationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.HR)),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Send a notification to one user"""
    recipient = user_service.get_user(db, notification_in.user_id)
    if recipient is None or not recipient.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    notification = crud_notification.create_notification(
        db=db,
        user_id=recipient.id,
        notification_type=notification_in.notification_type,
        title=notification_in.title,
        message=notification_in.message,
        actor_id=current_user.id,
    )
    await _push_unread_count(db, manager, recipient.id)
    return notification


@router.post("/broadcast", response_model=notification_schema.BroadcastResult)
async def broadcast_notification(
    broadcast_in: notification_schema.NotificationBroadcast,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.HR)),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Send a notification to every active user except the sender"""
    recipient_ids = user_service.get_active_user_ids(db, exclude_ids=[current_user.id])
    count = crud_notification.create_notifications(
        db=db,
        user_ids=recipient_ids,
        notification_type=broadcast_in.notification_type,
        title=broadcast_in.title,
        message=broadcast_in.message,
        actor_id=current_user.id,
    )
    for user_id in recipient_ids:
        await _push_unread_count(db, manager, user_id)
    return {"created_count": count}


@router.patch("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Mark a notification as read"""
    success = crud_notification.mark_notification_as_read(
        db=db,
        notification_id=notification_id,
        user_id=current_user.id
    )
    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
    await _push_unread_count(db, manager, current_user.id)
    return {"ok": True}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Delete a notification"""
    success = crud_notification.delete_notification(
        db=db,
        notification_id=notification_id,
        user_id=current_user.id
    )
    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
    await _push_unread_count(db, manager, current_user.id)
    return {"ok": True}
