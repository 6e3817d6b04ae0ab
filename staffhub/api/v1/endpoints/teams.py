from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from staffhub.core.dependencies import get_current_user, get_db, require_roles
from staffhub.models.enums import UserRole
from staffhub.models.user import User
from staffhub.schemas import team as schemas_team
from staffhub.services import team_service, user_service

router = APIRouter()


@router.get("/mine", response_model=List[schemas_team.TeamSummary])
def read_my_teams(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Teams the caller leads or belongs to"""
    return team_service.get_teams_for_user(db, current_user.id)


@router.get("/{team_id}", response_model=schemas_team.Team)
def read_team(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.HR, UserRole.MANAGER)),
):
    team = team_service.get_team(db, team_id)
    if team is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")
    if current_user.role == UserRole.MANAGER and team.leader_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not lead this team")
    return team


@router.post("/", response_model=schemas_team.Team, status_code=status.HTTP_201_CREATED)
def create_team(
    team: schemas_team.TeamCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.HR)),
):
    if team_service.get_team_by_name(db, team.name):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Team name already exists")
    user_ids = {team.leader_id, *team.member_ids}
    if len(user_service.get_users_by_ids(db, user_ids)) != len(user_ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown leader or member")
    return team_service.create_team(db, team)
