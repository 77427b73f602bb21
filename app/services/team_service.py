"""
Team Service

Team lifecycle (everything except deletion, see ``team_deletion_service``)
and the requester-aware membership flows used by the API.
"""
import logging
import re
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import AuthorizationError, InternalError, NotFoundError, ValidationError
from app.models import team as models_team, team_membership as models_team_membership
from app.models.team_membership import TeamRole
from app.schemas import team as schemas_team, team_membership as schemas_team_membership
from app.services import team_activity_service, team_membership_service, team_permission_service, user_service

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 1000
COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Team name is required")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"Team name must be at most {NAME_MAX_LENGTH} characters")
    return name


def _clean_description(description: Optional[str]) -> Optional[str]:
    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(f"Team description must be at most {DESCRIPTION_MAX_LENGTH} characters")
    return description


def _clean_color(color: Optional[str]) -> str:
    if not color:
        return settings.DEFAULT_TEAM_COLOR
    if not COLOR_PATTERN.match(color):
        raise ValidationError("Team color must be a hex value like #3B82F6")
    return color


def get_team(db: Session, team_id: int) -> Optional[models_team.Team]:
    return db.query(models_team.Team).filter(models_team.Team.id == team_id).first()


def get_team_for_member(db: Session, team_id: int, user_id: int) -> models_team.Team:
    """Team detail for a member; 404 when absent, 403 when the caller is not in it."""
    db_team = get_team(db, team_id)
    if db_team is None:
        raise NotFoundError("Team not found")
    team_permission_service.require_permission(db, team_id, user_id, team_permission_service.READ)
    return db_team


def get_user_teams(db: Session, user_id: int) -> List[models_team_membership.TeamMembership]:
    return team_membership_service.get_user_memberships(db, user_id)


def create_team(db: Session, team: schemas_team.TeamCreate, creator_id: int) -> models_team.Team:
    """
    Create a team with its creator as ``owner``.

    The team row, the owner membership and the activity entry are committed
    together; on any database error none of them remains.
    """
    name = _clean_name(team.name)
    description = _clean_description(team.description)
    color = _clean_color(team.color)
    if user_service.get_user(db, creator_id) is None:
        raise NotFoundError("User not found")

    db_team = models_team.Team(name=name, description=description, color=color, owner_id=creator_id)
    try:
        db.add(db_team)
        db.flush()
        db.add(models_team_membership.TeamMembership(
            team_id=db_team.id,
            user_id=creator_id,
            role=TeamRole.OWNER.value
        ))
        team_activity_service.record_activity(
            db, db_team.id, creator_id, team_activity_service.TEAM_CREATED, {"name": name}
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Teams] Failed to create team '{name}' for user {creator_id}: {e}")
        raise InternalError("Failed to create team") from e

    db.refresh(db_team)
    logger.info(f"[Teams] User {creator_id} created team {db_team.id} ('{name}')")
    return db_team


def update_team(
    db: Session,
    team_id: int,
    team: schemas_team.TeamUpdate,
    requester_id: int
) -> models_team.Team:
    db_team = get_team(db, team_id)
    if db_team is None:
        raise NotFoundError("Team not found")
    team_permission_service.require_permission(db, team_id, requester_id, team_permission_service.WRITE)

    update_data = team.model_dump(exclude_unset=True)
    if "name" in update_data:
        update_data["name"] = _clean_name(update_data["name"])
    if "description" in update_data:
        update_data["description"] = _clean_description(update_data["description"])
    if "color" in update_data:
        update_data["color"] = _clean_color(update_data["color"])

    for key, value in update_data.items():
        setattr(db_team, key, value)
    team_activity_service.record_activity(
        db, team_id, requester_id, team_activity_service.TEAM_UPDATED, {"fields": sorted(update_data)}
    )
    db.commit()
    db.refresh(db_team)
    logger.info(f"[Teams] User {requester_id} updated team {team_id}: {sorted(update_data)}")
    return db_team


def list_team_members(db: Session, team_id: int, requester_id: int) -> List[models_team_membership.TeamMembership]:
    team_permission_service.require_permission(db, team_id, requester_id, team_permission_service.READ)
    return team_membership_service.get_members(db, team_id)


def _require_owner_for(db: Session, team_id: int, requester_id: int, *roles: str) -> None:
    # Owner memberships are only granted, changed or removed by an owner.
    if TeamRole.OWNER.value in roles and not team_membership_service.is_owner(db, team_id, requester_id):
        logger.warning(f"[Permissions] Non-owner {requester_id} attempted an owner-level change in team {team_id}")
        raise AuthorizationError("Only a team owner can manage owners")


def add_team_member(
    db: Session,
    team_id: int,
    requester_id: int,
    member: schemas_team_membership.TeamMemberAdd
) -> models_team_membership.TeamMembership:
    team_permission_service.require_permission(db, team_id, requester_id, team_permission_service.MANAGE_MEMBERS)
    team_membership_service.validate_role(member.role)
    _require_owner_for(db, team_id, requester_id, member.role)

    if member.user_id is not None:
        user = user_service.get_user(db, member.user_id)
    elif member.email:
        user = user_service.get_user_by_email(db, member.email)
    else:
        raise ValidationError("Either user_id or email is required")
    if user is None:
        raise NotFoundError("User not found")

    membership = team_membership_service.add_member(db, team_id, user.id, member.role, commit=False)
    team_activity_service.record_activity(
        db, team_id, requester_id, team_activity_service.MEMBER_ADDED,
        {"role": member.role}, target_id=user.id, target_type="user"
    )
    db.commit()
    db.refresh(membership)
    return membership


def remove_team_member(db: Session, team_id: int, requester_id: int, user_id: int) -> bool:
    """Remove a member. Members may always remove themselves."""
    if requester_id == user_id:
        return leave_team(db, team_id, user_id)

    team_permission_service.require_permission(db, team_id, requester_id, team_permission_service.MANAGE_MEMBERS)
    current_role = team_membership_service.is_member(db, team_id, user_id)
    if not current_role:
        return False
    _require_owner_for(db, team_id, requester_id, current_role)

    removed = team_membership_service.remove_member(db, team_id, user_id)
    if removed:
        team_activity_service.record_activity(
            db, team_id, requester_id, team_activity_service.MEMBER_REMOVED,
            {"role": current_role}, target_id=user_id, target_type="user"
        )
        db.commit()
    return removed


def change_member_role(
    db: Session,
    team_id: int,
    requester_id: int,
    user_id: int,
    role: str
) -> models_team_membership.TeamMembership:
    team_permission_service.require_permission(db, team_id, requester_id, team_permission_service.MANAGE_MEMBERS)
    team_membership_service.validate_role(role)
    current_role = team_membership_service.is_member(db, team_id, user_id)
    if not current_role:
        raise NotFoundError("Team member not found")
    _require_owner_for(db, team_id, requester_id, current_role, role)

    membership = team_membership_service.update_member_role(db, team_id, user_id, role)
    team_activity_service.record_activity(
        db, team_id, requester_id, team_activity_service.MEMBER_ROLE_CHANGED,
        {"from": current_role, "to": role}, target_id=user_id, target_type="user"
    )
    db.commit()
    db.refresh(membership)
    return membership


def leave_team(db: Session, team_id: int, user_id: int) -> bool:
    if not team_permission_service.has_permission(db, team_id, user_id, team_permission_service.READ):
        raise AuthorizationError("You are not a member of this team")
    removed = team_membership_service.remove_member(db, team_id, user_id)
    if removed:
        team_activity_service.record_activity(db, team_id, user_id, team_activity_service.MEMBER_LEFT)
        db.commit()
    return removed
