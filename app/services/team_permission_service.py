"""
Team Permission Service

Role-based authorization for team-scoped actions. Every check reads the
caller's current role from the membership table; nothing is cached.
"""
import logging
from typing import Dict, FrozenSet, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import AuthorizationError
from app.services import team_membership_service

logger = logging.getLogger(__name__)

READ = "read"
WRITE = "write"
DELETE = "delete"
MANAGE_MEMBERS = "manage_members"

ACTIONS = (READ, WRITE, DELETE, MANAGE_MEMBERS)

ROLE_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    "owner": frozenset({READ, WRITE, DELETE, MANAGE_MEMBERS}),
    "admin": frozenset({READ, WRITE, MANAGE_MEMBERS}),
    "member": frozenset({READ}),
    "viewer": frozenset({READ}),
}


def role_allows(role: Optional[str], action: str) -> bool:
    """
    Look up an action in the role table. Unknown roles and actions are denied.

    Examples:
        >>> role_allows("viewer", "read")
        True
        >>> role_allows("admin", "delete")
        False
        >>> role_allows(None, "read")
        False
    """
    if not role:
        return False
    return action in ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(db: Session, team_id: int, user_id: int, action: str) -> bool:
    role = team_membership_service.is_member(db, team_id, user_id)
    return role_allows(role or None, action)


def require_permission(db: Session, team_id: int, user_id: int, action: str) -> str:
    """
    Raise AuthorizationError unless the user may perform ``action`` on the team.

    Returns:
        The user's role in the team
    """
    role = team_membership_service.is_member(db, team_id, user_id)
    if not role_allows(role or None, action):
        logger.warning(
            f"[Permissions] Denied action={action} team={team_id} user={user_id} role={role or 'none'}"
        )
        raise AuthorizationError("You do not have permission to perform this action on this team")
    return role
