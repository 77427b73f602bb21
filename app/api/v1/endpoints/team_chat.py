from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.core.dependencies import get_db, get_current_user
from app.models.user import User
from app.services import team_chat_service
from app.schemas import team_chat as schemas_team_chat

router = APIRouter()

@router.get("/teams/{team_id}/chat/messages", response_model=schemas_team_chat.TeamChatPage)
def read_team_messages(
    team_id: int,
    limit: Optional[int] = None,
    offset: int = 0,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_chat_service.get_by_team_id(db, team_id=team_id, user_id=current_user.id, limit=limit, offset=offset)

@router.post(
    "/teams/{team_id}/chat/messages",
    response_model=schemas_team_chat.TeamChatMessage,
    status_code=status.HTTP_201_CREATED,
)
def send_team_message(
    team_id: int,
    message: schemas_team_chat.TeamChatMessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_chat_service.create_message(db, team_id=team_id, user_id=current_user.id, message_in=message)

@router.post("/teams/{team_id}/chat/read", response_model=schemas_team_chat.MarkReadResult)
def mark_messages_read(
    team_id: int,
    body: schemas_team_chat.MarkReadRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    marked = team_chat_service.mark_as_read(db, team_id=team_id, user_id=current_user.id, message_ids=body.message_ids)
    unread = team_chat_service.count_unread(db, team_id=team_id, user_id=current_user.id)
    return schemas_team_chat.MarkReadResult(marked=marked, unread_count=unread)

@router.get("/teams/{team_id}/chat/unread-count", response_model=schemas_team_chat.UnreadCount)
def read_unread_count(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    unread = team_chat_service.get_unread_count(db, team_id=team_id, user_id=current_user.id)
    return schemas_team_chat.UnreadCount(team_id=team_id, unread_count=unread)

@router.get("/teams/{team_id}/chat/search", response_model=List[schemas_team_chat.TeamChatMessage])
def search_team_messages(
    team_id: int,
    q: str = Query(..., min_length=1),
    limit: int = 50,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_chat_service.search_messages(db, team_id=team_id, user_id=current_user.id, query=q, limit=limit)

@router.get("/teams/{team_id}/chat/latest", response_model=List[schemas_team_chat.TeamChatMessage])
def read_latest_messages(
    team_id: int,
    after_id: Optional[int] = None,
    limit: int = 50,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_chat_service.get_latest_messages(
        db, team_id=team_id, user_id=current_user.id, after_id=after_id, limit=limit
    )

@router.get("/teams/{team_id}/chat/stats", response_model=schemas_team_chat.TeamChatStats)
def read_chat_stats(
    team_id: int,
    days: int = 30,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_chat_service.get_chat_stats(db, team_id=team_id, user_id=current_user.id, days=days)

@router.put("/chat/messages/{message_id}", response_model=schemas_team_chat.TeamChatMessage)
def edit_message(
    message_id: int,
    message: schemas_team_chat.TeamChatMessageUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_chat_service.update_message(db, message_id=message_id, user_id=current_user.id, message_in=message)

@router.delete("/chat/messages/{message_id}")
def delete_message(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    team_chat_service.delete_message(db, message_id=message_id, user_id=current_user.id)
    return {"success": True}
