"""
Chat permission rules.

Who may open a direct conversation with whom, and who may open a team
conversation, is decided here and nowhere else. Rules are data: each role maps
to a ``RoleRule`` describing what it can reach, and ``resolve_scope`` turns a
user plus the current team roster into a ``ChatScope`` that answers concrete
questions.

Role precedence:
    admin, hr  -> anyone, any team conversation
    manager    -> admin, hr, members of every team they lead, plus leader and
                  teammates of any team they belong to as a member; opens
                  only the conversations of teams they lead
    employee   -> hr, plus leader and teammates of the teams they belong to,
                  and those teams' conversations

Unknown or deactivated users are never reachable (fail closed). Lookups hit the
database, so every function here can raise ``SQLAlchemyError``.
"""
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from staffhub.models.enums import UserRole
from staffhub.models.team import Team
from staffhub.models.user import User
from staffhub.services import team_service, user_service


@dataclass(frozen=True)
class RoleRule:
    unrestricted: bool = False
    # Roles reachable regardless of team relationships
    reachable_roles: FrozenSet[UserRole] = frozenset()
    # Reach the roster of teams the user leads
    led_team_reach: bool = False
    # Reach the leader and roster of teams the user is a member of
    member_user_reach: bool = False
    # Open the conversation of teams the user is a member of
    member_team_join: bool = False


ROLE_RULES = {
    UserRole.ADMIN: RoleRule(unrestricted=True),
    UserRole.HR: RoleRule(unrestricted=True),
    # Managers only open conversations of teams they lead
    UserRole.MANAGER: RoleRule(
        reachable_roles=frozenset({UserRole.ADMIN, UserRole.HR}),
        led_team_reach=True,
        member_user_reach=True,
    ),
    UserRole.EMPLOYEE: RoleRule(
        reachable_roles=frozenset({UserRole.HR}),
        led_team_reach=True,
        member_user_reach=True,
        member_team_join=True,
    ),
}


@dataclass(frozen=True)
class ChatScope:
    user_id: int
    role: UserRole
    unrestricted: bool
    reachable_roles: FrozenSet[UserRole]
    reachable_user_ids: FrozenSet[int]
    joinable_team_ids: FrozenSet[int]

    def allows_user(self, target: User) -> bool:
        if target.id == self.user_id or not target.is_active:
            return False
        if self.unrestricted:
            return True
        return target.role in self.reachable_roles or target.id in self.reachable_user_ids

    def allows_team(self, team_id: int) -> bool:
        return self.unrestricted or team_id in self.joinable_team_ids


def resolve_scope(db: Session, user: User) -> ChatScope:
    rule = ROLE_RULES.get(user.role, RoleRule())

    if rule.unrestricted:
        return ChatScope(
            user_id=user.id,
            role=user.role,
            unrestricted=True,
            reachable_roles=frozenset(UserRole),
            reachable_user_ids=frozenset(),
            joinable_team_ids=frozenset(),
        )

    reachable_user_ids = set()
    joinable_team_ids = set()

    if rule.led_team_reach:
        for team in team_service.get_teams_led_by(db, user.id):
            reachable_user_ids.update(team_service.get_team_member_ids(team))
            joinable_team_ids.add(team.id)

    if rule.member_user_reach or rule.member_team_join:
        for team in team_service.get_teams_containing(db, user.id):
            if rule.member_user_reach:
                reachable_user_ids.update(team_service.get_team_member_ids(team))
            if rule.member_team_join:
                joinable_team_ids.add(team.id)

    reachable_user_ids.discard(user.id)

    return ChatScope(
        user_id=user.id,
        role=user.role,
        unrestricted=False,
        reachable_roles=rule.reachable_roles,
        reachable_user_ids=frozenset(reachable_user_ids),
        joinable_team_ids=frozenset(joinable_team_ids),
    )


def _load_active_user(db: Session, user_id: Optional[int]) -> Optional[User]:
    if user_id is None:
        return None
    user = user_service.get_user(db, user_id)
    if user is None or not user.is_active:
        return None
    return user


def can_converse(db: Session, requester_id: int, target_id: int) -> bool:
    """Whether ``requester_id`` may hold a direct conversation with ``target_id``."""
    requester = _load_active_user(db, requester_id)
    target = _load_active_user(db, target_id)
    if requester is None or target is None:
        return False
    return resolve_scope(db, requester).allows_user(target)


def can_join_team_conversation(db: Session, requester_id: int, team_id: int) -> bool:
    requester = _load_active_user(db, requester_id)
    if requester is None:
        return False
    if team_service.get_team(db, team_id) is None:
        return False
    return resolve_scope(db, requester).allows_team(team_id)


def list_allowed_counterparts(db: Session, user: User) -> Tuple[List[User], List[Team]]:
    """Users and teams ``user`` may open conversations with. Never contains ``user``."""
    scope = resolve_scope(db, user)

    query = db.query(User).filter(User.id != user.id, User.is_active.is_(True))
    conditions = []
    if not scope.unrestricted:
        if scope.reachable_roles:
            conditions.append(User.role.in_(list(scope.reachable_roles)))
        if scope.reachable_user_ids:
            conditions.append(User.id.in_(list(scope.reachable_user_ids)))

    if scope.unrestricted:
        allowed_users = query.order_by(User.name, User.id).all()
    elif conditions:
        allowed_users = query.filter(or_(*conditions)).order_by(User.name, User.id).all()
    else:
        allowed_users = []

    if scope.unrestricted:
        allowed_teams = team_service.get_teams(db)
    else:
        allowed_teams = team_service.get_teams_by_ids(db, scope.joinable_team_ids)

    return allowed_users, allowed_teams
