import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.models.team_membership import TeamMembership
from app.models.team_notification import TeamNotification

logger = logging.getLogger(__name__)


def notify_team_members(
    db: Session,
    team_id: int,
    notification_type: str,
    title: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
    exclude_user_ids: Iterable[int] = (),
) -> int:
    """
    Queue one notification per team member on the caller's session.

    Nothing is committed here; the caller commits together with the change
    that triggered the notification.

    Returns:
        Number of notifications queued
    """
    excluded = set(exclude_user_ids)
    recipients = [
        user_id for (user_id,) in db.query(TeamMembership.user_id).filter(
            TeamMembership.team_id == team_id
        )
        if user_id not in excluded
    ]
    for user_id in recipients:
        db.add(TeamNotification(
            team_id=team_id,
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            data=data,
        ))
    if recipients:
        logger.debug(f"[TeamNotifications] Queued {notification_type} for {len(recipients)} member(s) of team {team_id}")
    return len(recipients)


def get_user_notifications(db: Session, user_id: int, unread_only: bool = False) -> List[TeamNotification]:
    query = db.query(TeamNotification).filter(TeamNotification.user_id == user_id)
    if unread_only:
        query = query.filter(TeamNotification.is_read == False)
    return query.order_by(TeamNotification.created_at.desc(), TeamNotification.id.desc()).all()
