from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional


class NotificationBase(BaseModel):
    notification_type: str
    title: str
    message: str
    related_message_id: Optional[int] = None
    related_conversation_id: Optional[int] = None


class Notification(NotificationBase):
    id: int
    user_id: int
    actor_id: Optional[int] = None
    is_read: bool
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NotificationBroadcast(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=1000)
    notification_type: str = "announcement"


class NotificationCreate(NotificationBroadcast):
    user_id: int


class BroadcastResult(BaseModel):
    created_count: int


class NotificationCount(BaseModel):
    unread_count: int
