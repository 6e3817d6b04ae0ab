from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from staffhub.core.dependencies import get_connection_manager, get_current_user, get_db
from staffhub.models.user import User
from staffhub.schemas import chat as chat_schema
from staffhub.services import chat_service
from staffhub.services.connection_manager import ConnectionManager

router = APIRouter()


@router.get("/allowed-users", response_model=chat_schema.AllowedCounterparts)
def read_allowed_counterparts(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return chat_service.list_allowed_counterparts(db, current_user)


@router.post("/conversations/direct", response_model=chat_schema.Conversation)
def open_direct_conversation(
    body: chat_schema.DirectConversationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return chat_service.open_direct_conversation(db, current_user, body.target_user_id)


@router.post("/conversations/team", response_model=chat_schema.Conversation)
def open_team_conversation(
    body: chat_schema.TeamConversationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return chat_service.open_team_conversation(db, current_user, body.team_id)


@router.get("/conversations", response_model=List[chat_schema.Conversation])
def read_my_conversations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return chat_service.list_my_conversations(db, current_user)


@router.get("/conversations/{conversation_id}/messages", response_model=List[chat_schema.Message])
async def read_conversation_messages(
    conversation_id: int,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Fetching counts as delivery for messages the caller did not send."""
    return await chat_service.list_conversation_messages(
        db, manager, current_user, conversation_id, skip=skip, limit=limit
    )


@router.post("/conversations/{conversation_id}/messages", response_model=chat_schema.Message)
async def send_message(
    conversation_id: int,
    body: chat_schema.MessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    return await chat_service.send_message(
        db, manager, current_user, conversation_id, text=body.text, attachment=body.attachment
    )


@router.post("/conversations/{conversation_id}/seen", response_model=chat_schema.SeenResult)
async def mark_conversation_seen(
    conversation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    change = await chat_service.mark_seen(db, manager, current_user, conversation_id=conversation_id)
    return {"updated_count": len(change.message_ids)}


@router.post("/conversations/{conversation_id}/resync", response_model=chat_schema.Conversation)
async def resync_team_conversation(
    conversation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    return await chat_service.resync_team_conversation(db, manager, current_user, conversation_id)


@router.post("/messages/{message_id}/delivered", response_model=chat_schema.SeenResult)
async def mark_message_delivered(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    change = await chat_service.mark_delivered(db, manager, current_user, message_id)
    return {"updated_count": len(change.message_ids)}


@router.post("/messages/{message_id}/seen", response_model=chat_schema.SeenResult)
async def mark_message_seen(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    change = await chat_service.mark_seen(db, manager, current_user, message_id=message_id)
    return {"updated_count": len(change.message_ids)}
