from pydantic import BaseModel
from typing import List, Optional
import datetime
from .team_membership import TeamMember

class TeamBase(BaseModel):
    name: str
    description: Optional[str] = None
    color: Optional[str] = None

class TeamCreate(TeamBase):
    pass

class TeamUpdate(TeamBase):
    name: Optional[str] = None

class Team(TeamBase):
    id: int
    color: str
    owner_id: int
    created_at: datetime.datetime
    updated_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True

class TeamDetail(Team):
    members: List[TeamMember] = []

class UserTeam(BaseModel):
    """A team as seen by one of its members."""
    role: str
    joined_at: datetime.datetime
    team: Team

    class Config:
        from_attributes = True

class TeamDeletionSummary(BaseModel):
    team_id: int
    members: int = 0
    read_receipts: int = 0
    messages: int = 0
    files: int = 0
    notifications: int = 0
    activities: int = 0
    task_comments: int = 0
    invitations: int = 0
    tasks_detached: int = 0
    projects_detached: int = 0
