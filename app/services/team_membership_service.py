"""
Team Membership Service

Ground truth for who belongs to which team with what role. The permission
service reads roles exclusively through ``is_member``.
"""
import logging
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import team as models_team, user as models_user, team_membership as models_team_membership
from app.models.team_membership import MANAGER_ROLES, TeamRole

logger = logging.getLogger(__name__)

VALID_ROLES = tuple(role.value for role in TeamRole)


def validate_role(role: str) -> str:
    if role not in VALID_ROLES:
        raise ValidationError(f"Invalid role '{role}'. Must be one of: {', '.join(VALID_ROLES)}")
    return role


def get_membership(db: Session, team_id: int, user_id: int) -> Optional[models_team_membership.TeamMembership]:
    return db.query(models_team_membership.TeamMembership).filter(
        models_team_membership.TeamMembership.team_id == team_id,
        models_team_membership.TeamMembership.user_id == user_id
    ).first()


def is_member(db: Session, team_id: int, user_id: int) -> Union[str, bool]:
    """
    Return the user's role in the team, or ``False`` when not a member.

    Examples:
        >>> from unittest.mock import MagicMock
        >>> db = MagicMock()
        >>> db.query.return_value.filter.return_value.first.return_value = None
        >>> is_member(db, 1, 2)
        False
    """
    membership = get_membership(db, team_id, user_id)
    if membership is None:
        return False
    return membership.role


def is_owner(db: Session, team_id: int, user_id: int) -> bool:
    return is_member(db, team_id, user_id) == TeamRole.OWNER.value


def get_members(db: Session, team_id: int) -> List[models_team_membership.TeamMembership]:
    """Members ordered by join time, oldest first."""
    return db.query(models_team_membership.TeamMembership).options(
        joinedload(models_team_membership.TeamMembership.user)
    ).filter(
        models_team_membership.TeamMembership.team_id == team_id
    ).order_by(
        models_team_membership.TeamMembership.joined_at.asc(),
        models_team_membership.TeamMembership.id.asc()
    ).all()


def count_managers(
    db: Session,
    team_id: int,
    exclude_user_id: Optional[int] = None,
    roles=MANAGER_ROLES
) -> int:
    query = db.query(models_team_membership.TeamMembership).filter(
        models_team_membership.TeamMembership.team_id == team_id,
        models_team_membership.TeamMembership.role.in_(roles)
    )
    if exclude_user_id is not None:
        query = query.filter(models_team_membership.TeamMembership.user_id != exclude_user_id)
    return query.count()


def _is_last_owner(db: Session, membership: models_team_membership.TeamMembership) -> bool:
    return membership.role == TeamRole.OWNER.value and count_managers(
        db, membership.team_id, exclude_user_id=membership.user_id, roles=(TeamRole.OWNER.value,)
    ) == 0


def add_member(
    db: Session,
    team_id: int,
    user_id: int,
    role: str = TeamRole.MEMBER.value,
    commit: bool = True
) -> models_team_membership.TeamMembership:
    """
    Insert a membership row.

    With ``commit=False`` the row is only flushed, so it joins the caller's
    transaction. If the uniqueness constraint fires the session is rolled back
    and ``ConflictError`` is raised.
    """
    validate_role(role)
    if db.query(models_team.Team).filter(models_team.Team.id == team_id).first() is None:
        raise NotFoundError("Team not found")
    if db.query(models_user.User).filter(models_user.User.id == user_id).first() is None:
        raise NotFoundError("User not found")
    if get_membership(db, team_id, user_id) is not None:
        logger.warning(f"[Teams] User {user_id} is already a member of team {team_id}")
        raise ConflictError("User is already a member of this team")

    db_membership = models_team_membership.TeamMembership(team_id=team_id, user_id=user_id, role=role)
    db.add(db_membership)
    try:
        if commit:
            db.commit()
            db.refresh(db_membership)
        else:
            db.flush()
    except IntegrityError:
        db.rollback()
        logger.warning(f"[Teams] Concurrent insert of membership team={team_id} user={user_id}")
        raise ConflictError("User is already a member of this team")

    logger.info(f"[Teams] Added user {user_id} to team {team_id} as {role}")
    return db_membership


def remove_member(db: Session, team_id: int, user_id: int) -> bool:
    """
    Delete a membership row. Returns ``False`` when there was nothing to delete.

    Raises ConflictError when the row is the team's last owner, or its last
    owner/admin.
    """
    membership = get_membership(db, team_id, user_id)
    if membership is None:
        return False
    if _is_last_owner(db, membership):
        logger.warning(f"[Teams] Refused to remove last owner {user_id} from team {team_id}")
        raise ConflictError("Cannot remove the last owner of a team")
    if membership.role in MANAGER_ROLES and count_managers(db, team_id, exclude_user_id=user_id) == 0:
        logger.warning(f"[Teams] Refused to remove last owner/admin {user_id} from team {team_id}")
        raise ConflictError("Cannot remove the last owner or admin of a team")

    db.delete(membership)
    db.commit()
    logger.info(f"[Teams] Removed user {user_id} from team {team_id}")
    return True


def update_member_role(db: Session, team_id: int, user_id: int, role: str) -> models_team_membership.TeamMembership:
    validate_role(role)
    membership = get_membership(db, team_id, user_id)
    if membership is None:
        raise NotFoundError("Team member not found")
    if role != TeamRole.OWNER.value and _is_last_owner(db, membership):
        logger.warning(f"[Teams] Refused to demote last owner {user_id} of team {team_id} to {role}")
        raise ConflictError("Cannot demote the last owner of a team")
    if (
        membership.role in MANAGER_ROLES
        and role not in MANAGER_ROLES
        and count_managers(db, team_id, exclude_user_id=user_id) == 0
    ):
        logger.warning(f"[Teams] Refused to demote last owner/admin {user_id} of team {team_id} to {role}")
        raise ConflictError("Cannot demote the last owner or admin of a team")

    previous_role = membership.role
    membership.role = role
    db.commit()
    db.refresh(membership)
    logger.info(f"[Teams] Changed role of user {user_id} in team {team_id}: {previous_role} -> {role}")
    return membership


def get_user_memberships(db: Session, user_id: int) -> List[models_team_membership.TeamMembership]:
    """Memberships of a user with their teams, most recently joined first."""
    return db.query(models_team_membership.TeamMembership).options(
        joinedload(models_team_membership.TeamMembership.team)
    ).filter(
        models_team_membership.TeamMembership.user_id == user_id
    ).order_by(
        models_team_membership.TeamMembership.joined_at.desc(),
        models_team_membership.TeamMembership.id.desc()
    ).all()
