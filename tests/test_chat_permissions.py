import pytest

from staffhub.models import User, UserRole
from staffhub.schemas.team import TeamCreate
from staffhub.services import chat_permission_service, team_service
from staffhub.services.chat_permission_service import can_converse, can_join_team_conversation


def _allowed_ids(db, user):
    allowed_users, allowed_teams = chat_permission_service.list_allowed_counterparts(db, user)
    return {u.id for u in allowed_users}, {t.id for t in allowed_teams}


@pytest.mark.parametrize("role_name", ["admin", "hr"])
def test_admin_and_hr_can_reach_everyone(db, org, role_name):
    requester = getattr(org, role_name)
    others = [org.admin, org.hr, org.m, org.m2, org.e, org.e2, org.f, org.g, org.n]

    for other in others:
        if other.id == requester.id:
            continue
        assert can_converse(db, requester.id, other.id)

    for team in (org.team_x, org.team_y, org.team_z):
        assert can_join_team_conversation(db, requester.id, team.id)


def test_manager_reaches_union_of_led_teams_plus_hr_and_admin(db, org):
    user_ids, team_ids = _allowed_ids(db, org.m)

    assert user_ids == {org.admin.id, org.hr.id, org.e.id, org.e2.id, org.f.id}
    assert team_ids == {org.team_x.id, org.team_y.id}


def test_manager_cannot_reach_other_managers_or_their_teams(db, org):
    assert not can_converse(db, org.m.id, org.m2.id)
    assert not can_converse(db, org.m.id, org.g.id)
    assert not can_converse(db, org.m.id, org.n.id)
    assert not can_join_team_conversation(db, org.m.id, org.team_z.id)


def test_manager_who_is_member_of_another_team_reaches_its_people(db, org):
    team_service.add_member_to_team(db, org.team_z.id, org.m.id)

    assert can_converse(db, org.m.id, org.m2.id)
    assert can_converse(db, org.m.id, org.g.id)


def test_manager_only_opens_conversations_of_teams_they_lead(db, org):
    team_service.add_member_to_team(db, org.team_z.id, org.m.id)

    assert can_join_team_conversation(db, org.m.id, org.team_x.id)
    assert can_join_team_conversation(db, org.m.id, org.team_y.id)
    assert can_join_team_conversation(db, org.m.id, org.team_z.id) is False

    _, team_ids = _allowed_ids(db, org.m)
    assert team_ids == {org.team_x.id, org.team_y.id}


def test_manager_leading_a_team_that_lists_another_manager_reaches_them(db, org):
    team_service.add_member_to_team(db, org.team_x.id, org.m2.id)

    assert can_converse(db, org.m.id, org.m2.id)
    assert can_converse(db, org.m2.id, org.m.id)


def test_employee_reaches_leader_teammates_and_hr(db, org):
    user_ids, team_ids = _allowed_ids(db, org.e)

    assert user_ids == {org.m.id, org.e2.id, org.hr.id}
    assert team_ids == {org.team_x.id}


def test_employee_cannot_reach_admin_or_other_teams(db, org):
    assert not can_converse(db, org.e.id, org.admin.id)
    assert not can_converse(db, org.e.id, org.f.id)
    assert not can_converse(db, org.e.id, org.g.id)
    assert not can_converse(db, org.e.id, org.m2.id)
    assert not can_join_team_conversation(db, org.e.id, org.team_y.id)


def test_employee_without_team_only_reaches_hr(db, org):
    user_ids, team_ids = _allowed_ids(db, org.n)

    assert user_ids == {org.hr.id}
    assert team_ids == set()
    assert can_converse(db, org.n.id, org.hr.id)
    assert not can_converse(db, org.n.id, org.m.id)
    assert not can_converse(db, org.n.id, org.admin.id)


def test_employee_in_two_teams_reaches_both(db, org):
    team_service.add_member_to_team(db, org.team_z.id, org.e.id)

    user_ids, team_ids = _allowed_ids(db, org.e)

    assert {org.m2.id, org.g.id} <= user_ids
    assert team_ids == {org.team_x.id, org.team_z.id}


def test_employee_leading_a_team_reaches_its_members(db, org):
    team = team_service.create_team(db, TeamCreate(name="Guild", leader_id=org.e.id, member_ids=[org.n.id]))

    assert can_converse(db, org.e.id, org.n.id)
    assert can_converse(db, org.n.id, org.e.id)
    assert can_join_team_conversation(db, org.e.id, team.id)


def test_allowed_counterparts_never_include_self(db, org):
    for user in (org.admin, org.hr, org.m, org.m2, org.e, org.e2, org.f, org.g, org.n):
        user_ids, _ = _allowed_ids(db, user)
        assert user.id not in user_ids


def test_missing_users_are_denied(db, org):
    assert not can_converse(db, org.admin.id, 9999)
    assert not can_converse(db, 9999, org.hr.id)
    assert not can_join_team_conversation(db, 9999, org.team_x.id)
    assert not can_join_team_conversation(db, org.admin.id, 9999)


def test_deactivated_users_are_denied(db, org):
    org.e2.is_active = False
    db.commit()

    assert not can_converse(db, org.e.id, org.e2.id)
    assert not can_converse(db, org.hr.id, org.e2.id)
    assert not can_converse(db, org.e2.id, org.hr.id)
    user_ids, _ = _allowed_ids(db, org.admin)
    assert org.e2.id not in user_ids


def test_self_is_never_reachable(db, org):
    assert not can_converse(db, org.admin.id, org.admin.id)


def test_role_rules_cover_every_role():
    assert set(chat_permission_service.ROLE_RULES) == set(UserRole)


def test_scope_reflects_roster_changes(db, org):
    assert can_converse(db, org.m.id, org.f.id)

    team_service.remove_member_from_team(db, org.team_y.id, org.f.id)

    assert not can_converse(db, org.m.id, org.f.id)
    assert not can_converse(db, org.f.id, org.m.id)


def test_new_hr_user_is_reachable_by_every_employee(db, org):
    hr2 = User(email="hr2@example.com", name="Hugo HR", role=UserRole.HR, is_active=True)
    db.add(hr2)
    db.commit()

    for user in (org.e, org.f, org.g, org.n, org.m):
        assert can_converse(db, user.id, hr2.id)
