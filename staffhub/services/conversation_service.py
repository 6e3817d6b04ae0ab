"""
Conversation store: create-or-get for direct and team conversations.

At most one dm conversation exists per unordered pair and at most one team
conversation per team. Both rules live in unique indexes (``dm_key`` and
``team_id``); when two requests race to create the same row, the loser's
insert fails, is rolled back, and the winner's row is returned instead.
"""
import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from staffhub.core.exceptions import InvalidInput, NotAMember, NotFound, PermissionDenied
from staffhub.crud import crud_chat
from staffhub.models import Conversation, ConversationType, User
from staffhub.services import chat_permission_service, team_service, user_service

logger = logging.getLogger(__name__)


def get_or_create_direct(db: Session, requester: User, target_user_id: int) -> Conversation:
    if target_user_id is None:
        raise InvalidInput("target_user_id is required")
    if target_user_id == requester.id:
        raise InvalidInput("You cannot start a conversation with yourself")
    if user_service.get_user(db, target_user_id) is None:
        raise NotFound("User not found")

    if not chat_permission_service.can_converse(db, requester.id, target_user_id):
        raise PermissionDenied()

    conversation = crud_chat.get_dm_conversation(db, requester.id, target_user_id)
    if conversation is not None:
        return conversation

    try:
        conversation = crud_chat.create_dm_conversation(db, requester.id, target_user_id)
        logger.info(f"Created dm conversation {conversation.id} for users {requester.id} and {target_user_id}")
        return conversation
    except IntegrityError:
        # The other member created it between our read and our insert
        db.rollback()
        logger.info(f"Dm conversation for users {requester.id} and {target_user_id} created concurrently; re-fetching")
        conversation = crud_chat.get_dm_conversation(db, requester.id, target_user_id)
        if conversation is None:
            raise
        return conversation


def get_or_create_team(db: Session, requester: User, team_id: int) -> Conversation:
    if team_id is None:
        raise InvalidInput("team_id is required")
    team = team_service.get_team(db, team_id)
    if team is None:
        raise NotFound("Team not found")

    if not chat_permission_service.can_join_team_conversation(db, requester.id, team_id):
        raise PermissionDenied("You are not allowed to open this team conversation")

    conversation = crud_chat.get_team_conversation(db, team_id)
    if conversation is not None:
        return conversation

    # Membership is a snapshot of the roster right now
    member_ids = team_service.get_team_member_ids(team)
    try:
        conversation = crud_chat.create_team_conversation(db, team_id, member_ids)
        logger.info(f"Created team conversation {conversation.id} for team {team_id} with {len(member_ids)} members")
        return conversation
    except IntegrityError:
        db.rollback()
        logger.info(f"Team conversation for team {team_id} created concurrently; re-fetching")
        conversation = crud_chat.get_team_conversation(db, team_id)
        if conversation is None:
            raise
        return conversation


def list_for_user(db: Session, user: User) -> List[Conversation]:
    """Conversations ``user`` belongs to, most recent activity first."""
    return crud_chat.get_user_conversations(db, user.id)


def get_conversation_for_member(db: Session, user_id: int, conversation_id: int) -> Conversation:
    if conversation_id is None:
        raise InvalidInput("conversation_id is required")
    conversation = crud_chat.get_conversation(db, conversation_id)
    if conversation is None:
        raise NotFound("Conversation not found")
    if user_id not in conversation.member_ids:
        raise NotAMember()
    return conversation


def check_can_post(db: Session, user_id: int, conversation: Conversation) -> None:
    """
    Re-check relationships at send time. Team reassignments since the
    conversation was opened take effect here.
    """
    if conversation.conversation_type == ConversationType.DM:
        other_ids = [member_id for member_id in conversation.member_ids if member_id != user_id]
        if not other_ids or not all(
            chat_permission_service.can_converse(db, user_id, other_id) for other_id in other_ids
        ):
            raise PermissionDenied()
    else:
        if conversation.team_id is None or not chat_permission_service.can_join_team_conversation(
            db, user_id, conversation.team_id
        ):
            raise PermissionDenied("You are no longer allowed to post in this team conversation")


def resync_team_conversation(db: Session, requester: User, conversation_id: int):
    """
    Replace a team conversation's member snapshot with the current roster.

    Returns ``(conversation, previous_member_ids)``.
    """
    conversation = crud_chat.get_conversation(db, conversation_id)
    if conversation is None:
        raise NotFound("Conversation not found")
    if conversation.conversation_type != ConversationType.TEAM or conversation.team_id is None:
        raise InvalidInput("Only team conversations can be resynced")

    team = team_service.get_team(db, conversation.team_id)
    if team is None:
        raise NotFound("Team not found")
    if not chat_permission_service.can_join_team_conversation(db, requester.id, team.id):
        raise PermissionDenied("You are not allowed to manage this team conversation")

    previous_member_ids = set(conversation.member_ids)
    conversation = crud_chat.replace_conversation_members(db, conversation, team_service.get_team_member_ids(team))
    logger.info(
        f"Resynced team conversation {conversation.id}: "
        f"{len(previous_member_ids)} -> {len(conversation.member_ids)} members"
    )
    return conversation, previous_member_ids
