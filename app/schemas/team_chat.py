from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from .user import User


class TeamChatMessageCreate(BaseModel):
    message: str
    message_type: str = "text"
    reply_to_id: Optional[int] = None


class TeamChatMessageUpdate(BaseModel):
    message: str


class TeamChatMessage(BaseModel):
    id: int
    team_id: int
    user_id: int
    message: str
    message_type: str
    reply_to_id: Optional[int] = None
    is_edited: bool = False
    edited_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    author: Optional[User] = None

    class Config:
        from_attributes = True


class TeamChatPage(BaseModel):
    messages: List[TeamChatMessage]
    unread_count: int

    class Config:
        from_attributes = True


class MarkReadRequest(BaseModel):
    message_ids: List[int]


class MarkReadResult(BaseModel):
    marked: int
    unread_count: int


class UnreadCount(BaseModel):
    team_id: int
    unread_count: int


class TeamChatStats(BaseModel):
    team_id: int
    days: int
    total_messages: int
    active_users: int
    messages_today: int
    messages_week: int
    messages_period: int
