"""
Team Chat Service

Team chat messages and per-user read tracking. A message is unread for a user
when someone else wrote it and the user has no read receipt for it. Every
operation requires read access to the team.
"""
import logging
from datetime import timedelta
from typing import Iterable, List, Optional

from sqlalchemy import case, exists, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.database import utc_now
from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.models.chat_read_receipt import ChatReadReceipt
from app.models.team_chat_message import MESSAGE_TYPES, TeamChatMessage
from app.schemas import team_chat as schemas_team_chat
from app.services import team_permission_service

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200


class ChatPage:
    """A window of team messages plus the reader's unread count."""

    def __init__(self, messages: List[TeamChatMessage], unread_count: int):
        self.messages = messages
        self.unread_count = unread_count


def _require_read(db: Session, team_id: int, user_id: int) -> str:
    return team_permission_service.require_permission(db, team_id, user_id, team_permission_service.READ)


def _clean_body(message: Optional[str]) -> str:
    body = (message or "").strip()
    if not body:
        raise ValidationError("Message cannot be empty")
    if len(body) > settings.CHAT_MESSAGE_MAX_LENGTH:
        raise ValidationError(f"Message must be at most {settings.CHAT_MESSAGE_MAX_LENGTH} characters")
    return body


def get_message(db: Session, message_id: int) -> Optional[TeamChatMessage]:
    return db.query(TeamChatMessage).filter(TeamChatMessage.id == message_id).first()


def create_message(
    db: Session,
    team_id: int,
    user_id: int,
    message_in: schemas_team_chat.TeamChatMessageCreate
) -> TeamChatMessage:
    _require_read(db, team_id, user_id)
    body = _clean_body(message_in.message)
    if message_in.message_type not in MESSAGE_TYPES:
        raise ValidationError(f"Invalid message type '{message_in.message_type}'")
    if message_in.reply_to_id is not None:
        parent = get_message(db, message_in.reply_to_id)
        if parent is None or parent.team_id != team_id:
            raise ValidationError("Replied-to message does not belong to this team")

    db_message = TeamChatMessage(
        team_id=team_id,
        user_id=user_id,
        message=body,
        message_type=message_in.message_type,
        reply_to_id=message_in.reply_to_id,
    )
    db.add(db_message)
    db.commit()
    db.refresh(db_message)
    logger.info(f"[TeamChat] User {user_id} posted message {db_message.id} in team {team_id}")
    return db_message


def update_message(
    db: Session,
    message_id: int,
    user_id: int,
    message_in: schemas_team_chat.TeamChatMessageUpdate
) -> TeamChatMessage:
    db_message = get_message(db, message_id)
    if db_message is None:
        raise NotFoundError("Message not found")
    _require_read(db, db_message.team_id, user_id)
    if db_message.user_id != user_id:
        logger.warning(f"[TeamChat] User {user_id} tried to edit message {message_id} of user {db_message.user_id}")
        raise AuthorizationError("You can only edit your own messages")

    db_message.message = _clean_body(message_in.message)
    db_message.is_edited = True
    db_message.edited_at = utc_now()
    db.commit()
    db.refresh(db_message)
    return db_message


def delete_message(db: Session, message_id: int, user_id: int) -> bool:
    """Authors may delete their own messages; owners and admins any message."""
    db_message = get_message(db, message_id)
    if db_message is None:
        raise NotFoundError("Message not found")
    team_id = db_message.team_id
    _require_read(db, team_id, user_id)
    if db_message.user_id != user_id and not team_permission_service.has_permission(
        db, team_id, user_id, team_permission_service.WRITE
    ):
        logger.warning(f"[TeamChat] User {user_id} tried to delete message {message_id} in team {team_id}")
        raise AuthorizationError("You can only delete your own messages")

    db.query(ChatReadReceipt).filter(
        ChatReadReceipt.message_id == message_id
    ).delete(synchronize_session=False)
    db.query(TeamChatMessage).filter(
        TeamChatMessage.reply_to_id == message_id
    ).update({"reply_to_id": None}, synchronize_session=False)
    db.delete(db_message)
    db.commit()
    logger.info(f"[TeamChat] User {user_id} deleted message {message_id} in team {team_id}")
    return True


def count_unread(db: Session, team_id: int, user_id: int) -> int:
    has_receipt = exists().where(
        ChatReadReceipt.message_id == TeamChatMessage.id,
        ChatReadReceipt.user_id == user_id
    )
    return db.query(TeamChatMessage).filter(
        TeamChatMessage.team_id == team_id,
        TeamChatMessage.user_id != user_id,
        ~has_receipt
    ).count()


def get_unread_count(db: Session, team_id: int, user_id: int) -> int:
    _require_read(db, team_id, user_id)
    return count_unread(db, team_id, user_id)


def _missing_receipts(db: Session, team_id: int, user_id: int, message_ids: set) -> List[int]:
    team_message_ids = {
        message_id for (message_id,) in db.query(TeamChatMessage.id).filter(
            TeamChatMessage.team_id == team_id,
            TeamChatMessage.id.in_(sorted(message_ids))
        )
    }
    if not team_message_ids:
        return []
    already_read = {
        message_id for (message_id,) in db.query(ChatReadReceipt.message_id).filter(
            ChatReadReceipt.user_id == user_id,
            ChatReadReceipt.message_id.in_(sorted(team_message_ids))
        )
    }
    return sorted(team_message_ids - already_read)


def mark_as_read(db: Session, team_id: int, user_id: int, message_ids: Iterable[int]) -> int:
    """
    Record read receipts for the given messages.

    Ids that do not belong to the team are ignored and existing receipts are
    left untouched, so repeating a call changes nothing.

    Returns:
        Number of receipts created
    """
    _require_read(db, team_id, user_id)
    wanted = set(message_ids)
    if not wanted:
        return 0

    for attempt in range(2):
        missing = _missing_receipts(db, team_id, user_id, wanted)
        if not missing:
            return 0
        now = utc_now()
        for message_id in missing:
            db.add(ChatReadReceipt(message_id=message_id, user_id=user_id, read_at=now))
        try:
            db.commit()
        except IntegrityError:
            # Another request stored some of these receipts first.
            db.rollback()
            if attempt:
                raise ConflictError("Could not record read receipts, please retry")
            logger.info(f"[TeamChat] Retrying read receipts for user {user_id} in team {team_id}")
            continue
        logger.debug(f"[TeamChat] User {user_id} read {len(missing)} message(s) in team {team_id}")
        return len(missing)
    return 0


def _check_limit(limit: int) -> int:
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    return limit


def _escape_like(term: str) -> str:
    """
    Examples:
        >>> _escape_like("50%_off")
        '50\\\\%\\\\_off'
    """
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def get_by_team_id(
    db: Session,
    team_id: int,
    user_id: int,
    limit: Optional[int] = None,
    offset: int = 0
) -> ChatPage:
    """The newest ``limit`` messages after skipping ``offset``, oldest first."""
    _require_read(db, team_id, user_id)
    if limit is None:
        limit = settings.CHAT_DEFAULT_PAGE_SIZE
    _check_limit(limit)
    if offset < 0:
        raise ValidationError("offset must not be negative")

    newest_first = db.query(TeamChatMessage).options(
        joinedload(TeamChatMessage.author)
    ).filter(
        TeamChatMessage.team_id == team_id
    ).order_by(
        TeamChatMessage.created_at.desc(), TeamChatMessage.id.desc()
    ).offset(offset).limit(limit).all()

    return ChatPage(messages=list(reversed(newest_first)), unread_count=count_unread(db, team_id, user_id))


def search_messages(db: Session, team_id: int, user_id: int, query: str, limit: int = 50) -> List[TeamChatMessage]:
    """Case-insensitive substring search; ``%`` and ``_`` match literally."""
    _require_read(db, team_id, user_id)
    _check_limit(limit)
    term = (query or "").strip()
    if not term:
        raise ValidationError("Search query is required")
    return db.query(TeamChatMessage).options(
        joinedload(TeamChatMessage.author)
    ).filter(
        TeamChatMessage.team_id == team_id,
        TeamChatMessage.message.ilike(f"%{_escape_like(term)}%", escape="\\")
    ).order_by(TeamChatMessage.created_at.desc(), TeamChatMessage.id.desc()).limit(limit).all()


def get_latest_messages(
    db: Session,
    team_id: int,
    user_id: int,
    after_id: Optional[int] = None,
    limit: int = 50
) -> List[TeamChatMessage]:
    """Messages newer than ``after_id`` in chronological order, for polling clients."""
    _require_read(db, team_id, user_id)
    _check_limit(limit)
    query = db.query(TeamChatMessage).options(
        joinedload(TeamChatMessage.author)
    ).filter(TeamChatMessage.team_id == team_id)
    if after_id is not None:
        query = query.filter(TeamChatMessage.id > after_id)
        return query.order_by(TeamChatMessage.id.asc()).limit(limit).all()
    newest_first = query.order_by(TeamChatMessage.id.desc()).limit(limit).all()
    return list(reversed(newest_first))


def get_chat_stats(db: Session, team_id: int, user_id: int, days: int = 30) -> schemas_team_chat.TeamChatStats:
    """Message totals for the team: overall, last day, last week and last ``days`` days."""
    _require_read(db, team_id, user_id)
    if days < 1 or days > 365:
        raise ValidationError("days must be between 1 and 365")

    now = utc_now()

    def since(delta):
        return func.count(case((TeamChatMessage.created_at >= now - delta, 1)))

    row = db.query(
        func.count(TeamChatMessage.id),
        func.count(func.distinct(TeamChatMessage.user_id)),
        since(timedelta(days=1)),
        since(timedelta(days=7)),
        since(timedelta(days=days)),
    ).filter(TeamChatMessage.team_id == team_id).one()

    return schemas_team_chat.TeamChatStats(
        team_id=team_id,
        days=days,
        total_messages=row[0],
        active_users=row[1],
        messages_today=row[2],
        messages_week=row[3],
        messages_period=row[4],
    )
