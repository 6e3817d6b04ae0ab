from pydantic import BaseModel, ConfigDict
from typing import List

from staffhub.schemas.user import UserSummary


class TeamBase(BaseModel):
    name: str


class TeamCreate(TeamBase):
    leader_id: int
    member_ids: List[int] = []


class TeamSummary(TeamBase):
    id: int
    leader_id: int

    model_config = ConfigDict(from_attributes=True)


class TeamMembership(BaseModel):
    id: int
    user_id: int
    team_id: int
    user: UserSummary

    model_config = ConfigDict(from_attributes=True)


class Team(TeamSummary):
    leader: UserSummary
    members: List[TeamMembership] = []
