"""
Team Invitation Service
Handles team invitations - create, accept, decline, cancel, expire

Invitations move from ``pending`` to exactly one terminal status. Each
transition is a conditional UPDATE on ``status = 'pending'`` and only the
caller whose update touched the row wins, so concurrent accepts of the same
token cannot both succeed. Expiry is checked against the clock on every use;
``clean_expired`` only tidies up rows nobody touched.
"""
import logging
import secrets
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.database import utc_now
from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InternalError,
    NotFoundError,
    TeamCoreError,
    ValidationError,
)
from app.models.team import Team
from app.models.team_invitation import InvitationStatus, TeamInvitation
from app.models.team_membership import TeamRole
from app.services import (
    team_activity_service,
    team_membership_service,
    team_notification_service,
    team_permission_service,
    user_service,
)

logger = logging.getLogger(__name__)

INVITABLE_ROLES = (TeamRole.ADMIN.value, TeamRole.MEMBER.value, TeamRole.VIEWER.value)

# Wrong-state, expired and unknown tokens all look the same to the caller.
INVALID_INVITATION = "Invitation not found or expired"


def generate_invitation_token() -> str:
    """Generate a secure random token (256 bits) for invitation links"""
    return secrets.token_urlsafe(32)


def normalize_email(email: Optional[str]) -> str:
    """
    Examples:
        >>> normalize_email("  B@X.com ")
        'b@x.com'
    """
    return (email or "").strip().lower()


def _pending_filter(now):
    return (
        TeamInvitation.status == InvitationStatus.PENDING.value,
        TeamInvitation.expires_at > now,
    )


def find_by_id(db: Session, invitation_id: int) -> Optional[TeamInvitation]:
    return db.query(TeamInvitation).filter(TeamInvitation.id == invitation_id).first()


def find_by_token(db: Session, token: str) -> Optional[TeamInvitation]:
    """A pending, unexpired invitation for the token, else ``None``."""
    return db.query(TeamInvitation).options(
        joinedload(TeamInvitation.team),
        joinedload(TeamInvitation.inviter)
    ).filter(
        TeamInvitation.token == token,
        *_pending_filter(utc_now())
    ).first()


def get_by_team_id(db: Session, team_id: int) -> List[TeamInvitation]:
    """All invitations of a team, newest first."""
    return db.query(TeamInvitation).filter(
        TeamInvitation.team_id == team_id
    ).order_by(TeamInvitation.created_at.desc(), TeamInvitation.id.desc()).all()


def get_by_email(db: Session, email: str) -> List[TeamInvitation]:
    """Pending, unexpired invitations addressed to an email."""
    return db.query(TeamInvitation).filter(
        TeamInvitation.email == normalize_email(email),
        *_pending_filter(utc_now())
    ).order_by(TeamInvitation.created_at.desc(), TeamInvitation.id.desc()).all()


def exists_for_email(db: Session, team_id: int, email: str) -> bool:
    return db.query(TeamInvitation.id).filter(
        TeamInvitation.team_id == team_id,
        TeamInvitation.email == normalize_email(email),
        *_pending_filter(utc_now())
    ).first() is not None


def list_team_invitations(db: Session, team_id: int, requester_id: int) -> List[TeamInvitation]:
    team_permission_service.require_permission(db, team_id, requester_id, team_permission_service.MANAGE_MEMBERS)
    return get_by_team_id(db, team_id)


def create_invitation(
    db: Session,
    team_id: int,
    email: str,
    role: str,
    inviter_id: int
) -> TeamInvitation:
    """
    Create a pending invitation for ``email`` to join the team.

    Raises:
        NotFoundError: The team does not exist
        AuthorizationError: The inviter cannot manage members
        ValidationError: Missing email or a role that cannot be invited
        ConflictError: The invitee is already a member, or a pending
            invitation for the same email exists
    """
    if db.query(Team).filter(Team.id == team_id).first() is None:
        raise NotFoundError("Team not found")
    team_permission_service.require_permission(db, team_id, inviter_id, team_permission_service.MANAGE_MEMBERS)

    email = normalize_email(email)
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    if role not in INVITABLE_ROLES:
        raise ValidationError(f"Invalid role '{role}'. Must be one of: {', '.join(INVITABLE_ROLES)}")

    invitee = user_service.get_user_by_email(db, email)
    if invitee is not None and team_membership_service.is_member(db, team_id, invitee.id):
        logger.warning(f"[Invitations] {email} is already a member of team {team_id}")
        raise ConflictError("User is already a member of this team")
    if exists_for_email(db, team_id, email):
        logger.warning(f"[Invitations] Pending invitation for {email} already exists in team {team_id}")
        raise ConflictError("A pending invitation already exists for this email")

    invitation = TeamInvitation(
        team_id=team_id,
        email=email,
        role=role,
        token=generate_invitation_token(),
        invited_by=inviter_id,
        status=InvitationStatus.PENDING.value,
        expires_at=utc_now() + timedelta(days=settings.INVITATION_EXPIRY_DAYS),
    )
    db.add(invitation)
    team_activity_service.record_activity(
        db, team_id, inviter_id, team_activity_service.MEMBER_INVITED, {"email": email, "role": role}
    )
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"[Invitations] Could not store invitation for {email} in team {team_id}: {e}")
        raise ConflictError("Could not create invitation, please retry") from e

    db.refresh(invitation)
    logger.info(f"[Invitations] User {inviter_id} invited {email} to team {team_id} as {role}")
    return invitation


def _transition(db: Session, new_status: str, *criteria, **values) -> int:
    """Flip matching pending rows to ``new_status``; returns the affected row count."""
    values["status"] = new_status
    return db.query(TeamInvitation).filter(
        TeamInvitation.status == InvitationStatus.PENDING.value,
        *criteria
    ).update(values, synchronize_session=False)


def accept_invitation(db: Session, token: str, user_id: int) -> TeamInvitation:
    """
    Accept an invitation and join its team with the invited role.

    Succeeds iff the invitation is pending and unexpired at the time of the
    call. A user who is already a member still gets a successful accept.
    """
    now = utc_now()
    updated = _transition(
        db, InvitationStatus.ACCEPTED.value,
        TeamInvitation.token == token, TeamInvitation.expires_at > now,
        accepted_at=now
    )
    if updated == 0:
        db.rollback()
        logger.warning(f"[Invitations] User {user_id} tried to accept an invalid or expired token")
        raise NotFoundError(INVALID_INVITATION)

    invitation = db.query(TeamInvitation).filter(TeamInvitation.token == token).populate_existing().one()
    team_id, role = invitation.team_id, invitation.role

    if team_membership_service.is_member(db, team_id, user_id):
        db.commit()
        logger.info(f"[Invitations] User {user_id} accepted invitation {invitation.id} but was already in team {team_id}")
        db.refresh(invitation)
        return invitation

    try:
        team_membership_service.add_member(db, team_id, user_id, role, commit=False)
        team_notification_service.notify_team_members(
            db, team_id,
            notification_type="member_joined",
            title="New team member",
            message=f"{invitation.email} joined the team as {role}",
            data={"user_id": user_id, "role": role},
            exclude_user_ids=[user_id],
        )
        team_activity_service.record_activity(
            db, team_id, user_id, team_activity_service.MEMBER_JOINED,
            {"role": role, "invitation_id": invitation.id}
        )
        db.commit()
    except ConflictError:
        # Lost a race with another insert of the same membership; redo the
        # status flip on its own.
        db.rollback()
        return _accept_existing_member(db, token, user_id)
    except TeamCoreError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Invitations] Failed to accept invitation for team {team_id} by user {user_id}: {e}")
        raise InternalError("Failed to accept invitation") from e

    db.refresh(invitation)
    logger.info(f"[Invitations] User {user_id} joined team {team_id} as {role} via invitation {invitation.id}")
    return invitation


def _accept_existing_member(db: Session, token: str, user_id: int) -> TeamInvitation:
    now = utc_now()
    updated = _transition(
        db, InvitationStatus.ACCEPTED.value,
        TeamInvitation.token == token, TeamInvitation.expires_at > now,
        accepted_at=now
    )
    if updated == 0:
        db.rollback()
        raise NotFoundError(INVALID_INVITATION)
    db.commit()
    invitation = db.query(TeamInvitation).filter(TeamInvitation.token == token).one()
    logger.info(f"[Invitations] User {user_id} accepted invitation {invitation.id} after a concurrent join")
    return invitation


def decline_invitation(db: Session, token: str) -> TeamInvitation:
    updated = _transition(
        db, InvitationStatus.DECLINED.value,
        TeamInvitation.token == token, TeamInvitation.expires_at > utc_now()
    )
    if updated == 0:
        db.rollback()
        raise NotFoundError(INVALID_INVITATION)
    db.commit()
    invitation = db.query(TeamInvitation).filter(TeamInvitation.token == token).one()
    logger.info(f"[Invitations] Invitation {invitation.id} to team {invitation.team_id} declined")
    return invitation


def cancel_invitation(
    db: Session,
    invitation_id: int,
    requester_id: int,
    team_id: Optional[int] = None
) -> TeamInvitation:
    """Cancel a pending invitation. Only the user who sent it may cancel it."""
    invitation = find_by_id(db, invitation_id)
    if invitation is None or (team_id is not None and invitation.team_id != team_id):
        raise NotFoundError("Invitation not found")
    if invitation.invited_by != requester_id:
        logger.warning(f"[Invitations] User {requester_id} tried to cancel invitation {invitation_id} they did not send")
        raise AuthorizationError("Only the inviter can cancel this invitation")

    updated = _transition(db, InvitationStatus.CANCELLED.value, TeamInvitation.id == invitation_id)
    if updated == 0:
        db.rollback()
        raise ConflictError("Only pending invitations can be cancelled")
    db.commit()
    db.refresh(invitation)
    logger.info(f"[Invitations] User {requester_id} cancelled invitation {invitation_id}")
    return invitation


def clean_expired(db: Session) -> int:
    """Mark every pending invitation past its expiry as ``expired``."""
    count = _transition(db, InvitationStatus.EXPIRED.value, TeamInvitation.expires_at <= utc_now())
    db.commit()
    if count:
        logger.info(f"[Invitations] Marked {count} invitation(s) as expired")
    return count
