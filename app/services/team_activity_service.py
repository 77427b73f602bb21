"""
Team activity log.

Entries are added to the caller's session without committing, so they land in
the same transaction as the change they describe.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.team_activity import TeamActivity

logger = logging.getLogger(__name__)

TEAM_CREATED = "team_created"
TEAM_UPDATED = "team_updated"
MEMBER_ADDED = "member_added"
MEMBER_REMOVED = "member_removed"
MEMBER_LEFT = "member_left"
MEMBER_ROLE_CHANGED = "member_role_changed"
MEMBER_INVITED = "member_invited"
MEMBER_JOINED = "member_joined"


def record_activity(
    db: Session,
    team_id: int,
    user_id: int,
    activity_type: str,
    activity_data: Optional[Dict[str, Any]] = None,
    target_id: Optional[int] = None,
    target_type: Optional[str] = None,
) -> TeamActivity:
    activity = TeamActivity(
        team_id=team_id,
        user_id=user_id,
        activity_type=activity_type,
        activity_data=activity_data,
        target_id=target_id,
        target_type=target_type,
    )
    db.add(activity)
    logger.debug(f"[TeamActivity] {activity_type} team={team_id} user={user_id}")
    return activity


def get_team_activity(db: Session, team_id: int, limit: int = 50) -> List[TeamActivity]:
    """Most recent entries first."""
    return db.query(TeamActivity).filter(
        TeamActivity.team_id == team_id
    ).order_by(TeamActivity.created_at.desc(), TeamActivity.id.desc()).limit(limit).all()
