from pydantic import BaseModel
from typing import Optional
import datetime
from .user import User

class TeamMemberAdd(BaseModel):
    """Either ``user_id`` or ``email`` identifies the user to add."""
    user_id: Optional[int] = None
    email: Optional[str] = None
    role: str = "member"

class TeamMemberRoleUpdate(BaseModel):
    role: str

class TeamMember(BaseModel):
    id: int
    team_id: int
    user_id: int
    role: str
    joined_at: datetime.datetime
    user: Optional[User] = None

    class Config:
        from_attributes = True
