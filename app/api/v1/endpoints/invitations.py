"""
Team Invitations API Endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from app.core.dependencies import get_db, get_current_user
from app.core.exceptions import NotFoundError
from app.models.user import User
from app.schemas.team_invitation import TeamInvitation, TeamInvitationInfo
from app.services import team_invitation_service

router = APIRouter()


@router.get("", response_model=List[TeamInvitation])
def list_my_invitations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Pending invitations addressed to the current user's email."""
    return team_invitation_service.get_by_email(db, current_user.email)


@router.get("/{token}", response_model=TeamInvitationInfo)
def get_invitation(
    token: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    invitation = team_invitation_service.find_by_token(db, token)
    if invitation is None:
        raise NotFoundError(team_invitation_service.INVALID_INVITATION)

    return TeamInvitationInfo(
        team_id=invitation.team_id,
        team_name=invitation.team.name,
        email=invitation.email,
        role=invitation.role,
        status=invitation.status,
        expires_at=invitation.expires_at,
        invited_by_name=invitation.inviter.name if invitation.inviter else None,
    )


@router.post("/{token}/accept", response_model=TeamInvitation)
def accept_invitation(
    token: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return team_invitation_service.accept_invitation(db, token=token, user_id=current_user.id)


@router.post("/{token}/decline", response_model=TeamInvitation)
def decline_invitation(
    token: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return team_invitation_service.decline_invitation(db, token=token)


@router.delete("/{invitation_id}", response_model=TeamInvitation)
def cancel_invitation(
    invitation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Cancel a pending invitation. Only the inviter can do this."""
    return team_invitation_service.cancel_invitation(db, invitation_id=invitation_id, requester_id=current_user.id)
