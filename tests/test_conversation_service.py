from datetime import datetime, timedelta

import pytest

from staffhub.core.exceptions import InvalidInput, NotAMember, NotFound, PermissionDenied
from staffhub.crud import crud_chat
from staffhub.models import Conversation, ConversationType
from staffhub.services import conversation_service, team_service


def test_direct_conversation_is_created_with_both_members(db, org):
    conversation = conversation_service.get_or_create_direct(db, org.e, org.m.id)

    assert conversation.conversation_type == ConversationType.DM
    assert sorted(conversation.member_ids) == sorted([org.e.id, org.m.id])
    assert conversation.last_message == ""
    assert conversation.last_message_at is None


def test_direct_conversation_is_idempotent_in_either_direction(db, org):
    first = conversation_service.get_or_create_direct(db, org.e, org.m.id)
    second = conversation_service.get_or_create_direct(db, org.m, org.e.id)
    third = conversation_service.get_or_create_direct(db, org.e, org.m.id)

    assert first.id == second.id == third.id
    assert db.query(Conversation).count() == 1


def test_direct_conversation_recovers_from_creation_race(db, org, monkeypatch):
    existing = conversation_service.get_or_create_direct(db, org.m, org.e.id)

    # Simulate losing the race: the read misses, the insert hits the unique index
    real_lookup = crud_chat.get_dm_conversation
    calls = []

    def stale_lookup(session, a, b):
        calls.append((a, b))
        if len(calls) == 1:
            return None
        return real_lookup(session, a, b)

    monkeypatch.setattr(crud_chat, "get_dm_conversation", stale_lookup)

    conversation = conversation_service.get_or_create_direct(db, org.e, org.m.id)

    assert conversation.id == existing.id
    assert len(calls) == 2
    assert db.query(Conversation).count() == 1


def test_direct_conversation_requires_permission(db, org):
    with pytest.raises(PermissionDenied):
        conversation_service.get_or_create_direct(db, org.e, org.f.id)
    with pytest.raises(PermissionDenied):
        conversation_service.get_or_create_direct(db, org.n, org.m.id)
    assert db.query(Conversation).count() == 0


def test_direct_conversation_rejects_self_and_unknown_target(db, org):
    with pytest.raises(InvalidInput):
        conversation_service.get_or_create_direct(db, org.e, org.e.id)
    with pytest.raises(InvalidInput):
        conversation_service.get_or_create_direct(db, org.e, None)
    with pytest.raises(NotFound):
        conversation_service.get_or_create_direct(db, org.hr, 4242)


def test_team_conversation_snapshots_leader_and_members(db, org):
    conversation = conversation_service.get_or_create_team(db, org.m, org.team_x.id)

    assert conversation.conversation_type == ConversationType.TEAM
    assert conversation.team_id == org.team_x.id
    assert sorted(conversation.member_ids) == sorted([org.m.id, org.e.id, org.e2.id])


def test_team_conversation_is_shared_between_leader_and_members(db, org):
    by_leader = conversation_service.get_or_create_team(db, org.m, org.team_x.id)
    by_member = conversation_service.get_or_create_team(db, org.e, org.team_x.id)

    assert by_leader.id == by_member.id
    assert db.query(Conversation).filter(Conversation.team_id == org.team_x.id).count() == 1


def test_team_conversation_recovers_from_creation_race(db, org, monkeypatch):
    existing = conversation_service.get_or_create_team(db, org.m, org.team_x.id)
    real_lookup = crud_chat.get_team_conversation
    calls = []

    def stale_lookup(session, team_id):
        calls.append(team_id)
        if len(calls) == 1:
            return None
        return real_lookup(session, team_id)

    monkeypatch.setattr(crud_chat, "get_team_conversation", stale_lookup)

    conversation = conversation_service.get_or_create_team(db, org.e2, org.team_x.id)

    assert conversation.id == existing.id


def test_team_conversation_requires_team_relationship(db, org):
    with pytest.raises(PermissionDenied):
        conversation_service.get_or_create_team(db, org.e, org.team_y.id)
    with pytest.raises(PermissionDenied):
        conversation_service.get_or_create_team(db, org.m2, org.team_x.id)
    with pytest.raises(NotFound):
        conversation_service.get_or_create_team(db, org.admin, 4242)


def test_manager_cannot_open_conversation_of_team_they_only_belong_to(db, org):
    team_service.add_member_to_team(db, org.team_z.id, org.m.id)

    with pytest.raises(PermissionDenied):
        conversation_service.get_or_create_team(db, org.m, org.team_z.id)
    assert db.query(Conversation).count() == 0


def test_team_conversation_membership_is_not_live(db, org):
    conversation = conversation_service.get_or_create_team(db, org.m, org.team_x.id)

    team_service.add_member_to_team(db, org.team_x.id, org.n.id)
    again = conversation_service.get_or_create_team(db, org.n, org.team_x.id)

    assert again.id == conversation.id
    assert org.n.id not in again.member_ids


def test_resync_refreshes_team_snapshot(db, org):
    conversation = conversation_service.get_or_create_team(db, org.m, org.team_x.id)
    team_service.add_member_to_team(db, org.team_x.id, org.n.id)
    team_service.remove_member_from_team(db, org.team_x.id, org.e2.id)

    conversation, previous = conversation_service.resync_team_conversation(db, org.m, conversation.id)

    assert previous == {org.m.id, org.e.id, org.e2.id}
    assert sorted(conversation.member_ids) == sorted([org.m.id, org.e.id, org.n.id])


def test_resync_rejects_direct_conversations_and_outsiders(db, org):
    dm = conversation_service.get_or_create_direct(db, org.e, org.m.id)
    team_conversation = conversation_service.get_or_create_team(db, org.m, org.team_x.id)

    with pytest.raises(InvalidInput):
        conversation_service.resync_team_conversation(db, org.m, dm.id)
    with pytest.raises(PermissionDenied):
        conversation_service.resync_team_conversation(db, org.m2, team_conversation.id)


def test_list_for_user_orders_by_latest_activity(db, org):
    older = conversation_service.get_or_create_direct(db, org.hr, org.e.id)
    newer = conversation_service.get_or_create_direct(db, org.hr, org.m.id)
    idle = conversation_service.get_or_create_direct(db, org.hr, org.admin.id)

    now = datetime(2026, 1, 1, 12, 0, 0)
    crud_chat.update_conversation_summary(db, older.id, "first", now)
    crud_chat.update_conversation_summary(db, newer.id, "second", now + timedelta(minutes=5))

    listed = conversation_service.list_for_user(db, org.hr)

    assert [c.id for c in listed] == [newer.id, older.id, idle.id]
    assert [c.id for c in conversation_service.list_for_user(db, org.e)] == [older.id]


def test_get_conversation_for_member_checks_membership(db, org):
    conversation = conversation_service.get_or_create_direct(db, org.e, org.m.id)

    assert conversation_service.get_conversation_for_member(db, org.e.id, conversation.id).id == conversation.id
    with pytest.raises(NotAMember):
        conversation_service.get_conversation_for_member(db, org.hr.id, conversation.id)
    with pytest.raises(NotFound):
        conversation_service.get_conversation_for_member(db, org.e.id, 4242)
