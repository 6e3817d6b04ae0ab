from typing import Iterable, List, Optional, Set

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from staffhub.models import team as models_team, team_membership as models_team_membership
from staffhub.schemas import team as schemas_team

Team = models_team.Team
TeamMembership = models_team_membership.TeamMembership


def get_team(db: Session, team_id: int) -> Optional[Team]:
    return db.query(Team).options(joinedload(Team.members)).filter(Team.id == team_id).first()


def get_team_by_name(db: Session, name: str) -> Optional[Team]:
    return db.query(Team).filter(Team.name == name).first()


def get_teams(db: Session, skip: int = 0, limit: int = 500) -> List[Team]:
    return db.query(Team).order_by(Team.id).offset(skip).limit(limit).all()


def get_teams_by_ids(db: Session, team_ids: Iterable[int]) -> List[Team]:
    team_ids = list(set(team_ids))
    if not team_ids:
        return []
    return db.query(Team).filter(Team.id.in_(team_ids)).order_by(Team.id).all()


def get_teams_led_by(db: Session, user_id: int) -> List[Team]:
    return db.query(Team).options(joinedload(Team.members)).filter(Team.leader_id == user_id).all()


def get_teams_containing(db: Session, user_id: int) -> List[Team]:
    """Teams that list ``user_id`` in their member roster (leadership not included)."""
    return (
        db.query(Team)
        .options(joinedload(Team.members))
        .join(TeamMembership, TeamMembership.team_id == Team.id)
        .filter(TeamMembership.user_id == user_id)
        .all()
    )


def get_teams_for_user(db: Session, user_id: int) -> List[Team]:
    """Teams the user leads or belongs to."""
    member_team_ids = db.query(TeamMembership.team_id).filter(TeamMembership.user_id == user_id)
    return (
        db.query(Team)
        .filter(or_(Team.leader_id == user_id, Team.id.in_(member_team_ids)))
        .order_by(Team.id)
        .all()
    )


def get_team_member_ids(team: Team) -> Set[int]:
    """Leader plus roster, as of now."""
    member_ids = {membership.user_id for membership in team.members}
    member_ids.add(team.leader_id)
    return member_ids


def create_team(db: Session, team: schemas_team.TeamCreate) -> Team:
    db_team = Team(name=team.name, leader_id=team.leader_id)
    for member_id in set(team.member_ids):
        db_team.members.append(TeamMembership(user_id=member_id))
    db.add(db_team)
    db.commit()
    db.refresh(db_team)
    return db_team


def add_member_to_team(db: Session, team_id: int, user_id: int) -> Optional[TeamMembership]:
    team = get_team(db, team_id)
    if not team:
        return None

    existing = db.query(TeamMembership).filter(
        TeamMembership.team_id == team_id,
        TeamMembership.user_id == user_id,
    ).first()
    if existing:
        return existing

    db_membership = TeamMembership(team_id=team_id, user_id=user_id)
    db.add(db_membership)
    db.commit()
    db.refresh(db_membership)
    return db_membership


def remove_member_from_team(db: Session, team_id: int, user_id: int) -> bool:
    deleted = db.query(TeamMembership).filter(
        TeamMembership.team_id == team_id,
        TeamMembership.user_id == user_id,
    ).delete()
    db.commit()
    return deleted > 0
