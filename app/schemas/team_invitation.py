from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime


class TeamInvitationCreate(BaseModel):
    email: EmailStr
    role: str = "member"


class TeamInvitation(BaseModel):
    id: int
    team_id: int
    email: str
    role: str
    token: str
    invited_by: int
    status: str
    expires_at: datetime
    created_at: datetime
    accepted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TeamInvitationInfo(BaseModel):
    """Public view of a pending invitation, looked up by its token."""
    team_id: int
    team_name: str
    email: str
    role: str
    status: str
    expires_at: datetime
    invited_by_name: Optional[str] = None
