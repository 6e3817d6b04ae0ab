from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
import datetime

from staffhub.models.enums import ConversationType, MessageStatus
from staffhub.schemas.user import UserSummary
from staffhub.schemas.team import TeamSummary


class ChatAttachment(BaseModel):
    file_url: str = Field(min_length=1)
    file_name: str = Field(min_length=1)
    file_type: str
    file_size: int = Field(ge=0)

    model_config = ConfigDict(from_attributes=True)


# Requests
class DirectConversationCreate(BaseModel):
    target_user_id: int


class TeamConversationCreate(BaseModel):
    team_id: int


class MessageCreate(BaseModel):
    text: Optional[str] = None
    attachment: Optional[ChatAttachment] = None


# Responses
class ConversationMember(BaseModel):
    user_id: int
    joined_at: Optional[datetime.datetime] = None
    user: UserSummary

    model_config = ConfigDict(from_attributes=True)


class Conversation(BaseModel):
    id: int
    conversation_type: ConversationType
    team_id: Optional[int] = None
    last_message: str = ""
    last_message_at: Optional[datetime.datetime] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None
    members: List[ConversationMember] = []

    model_config = ConfigDict(from_attributes=True)


class Message(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    text: str = ""
    attachment: Optional[ChatAttachment] = None
    status: MessageStatus
    created_at: Optional[datetime.datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MessageStatusUpdate(BaseModel):
    conversation_id: int
    message_ids: List[int]
    status: MessageStatus


class AllowedCounterparts(BaseModel):
    user: UserSummary
    allowed_users: List[UserSummary] = []
    allowed_teams: List[TeamSummary] = []


class SeenResult(BaseModel):
    updated_count: int
