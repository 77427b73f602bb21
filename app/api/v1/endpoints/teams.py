from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from app.core.dependencies import get_db, get_current_user
from app.models.user import User
from app.services import team_service, team_deletion_service, team_invitation_service
from app.schemas import (
    team as schemas_team,
    team_membership as schemas_team_membership,
    team_invitation as schemas_team_invitation,
)

router = APIRouter()

@router.post("", response_model=schemas_team.Team, status_code=status.HTTP_201_CREATED)
def create_team(
    team: schemas_team.TeamCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_service.create_team(db=db, team=team, creator_id=current_user.id)

@router.get("", response_model=List[schemas_team.UserTeam])
def read_teams(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_service.get_user_teams(db, user_id=current_user.id)

@router.get("/{team_id}", response_model=schemas_team.TeamDetail)
def read_team(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_service.get_team_for_member(db, team_id=team_id, user_id=current_user.id)

@router.put("/{team_id}", response_model=schemas_team.Team)
def update_team(
    team_id: int,
    team: schemas_team.TeamUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_service.update_team(db=db, team_id=team_id, team=team, requester_id=current_user.id)

@router.delete("/{team_id}", response_model=schemas_team.TeamDeletionSummary)
def delete_team(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_deletion_service.delete_team(db, team_id=team_id, requester_id=current_user.id)

@router.get("/{team_id}/members", response_model=List[schemas_team_membership.TeamMember])
def get_team_members(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_service.list_team_members(db, team_id=team_id, requester_id=current_user.id)

@router.post("/{team_id}/members", response_model=schemas_team_membership.TeamMember)
def add_team_member(
    team_id: int,
    member: schemas_team_membership.TeamMemberAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_service.add_team_member(db=db, team_id=team_id, requester_id=current_user.id, member=member)

@router.delete("/{team_id}/members/{user_id}")
def remove_team_member(
    team_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    removed = team_service.remove_team_member(db=db, team_id=team_id, requester_id=current_user.id, user_id=user_id)
    return {"success": True, "removed": removed}

@router.put("/{team_id}/members/{user_id}", response_model=schemas_team_membership.TeamMember)
def update_team_member_role(
    team_id: int,
    user_id: int,
    member: schemas_team_membership.TeamMemberRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_service.change_member_role(
        db=db, team_id=team_id, requester_id=current_user.id, user_id=user_id, role=member.role
    )

@router.post("/{team_id}/leave")
def leave_team(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    team_service.leave_team(db, team_id=team_id, user_id=current_user.id)
    return {"success": True, "message": "You have left the team"}

@router.post(
    "/{team_id}/invite",
    response_model=schemas_team_invitation.TeamInvitation,
    status_code=status.HTTP_201_CREATED,
)
def invite_to_team(
    team_id: int,
    invitation: schemas_team_invitation.TeamInvitationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_invitation_service.create_invitation(
        db, team_id=team_id, email=invitation.email, role=invitation.role, inviter_id=current_user.id
    )

@router.get("/{team_id}/invitations", response_model=List[schemas_team_invitation.TeamInvitation])
def read_team_invitations(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_invitation_service.list_team_invitations(db, team_id=team_id, requester_id=current_user.id)

@router.delete("/{team_id}/invitations/{invitation_id}", response_model=schemas_team_invitation.TeamInvitation)
def cancel_team_invitation(
    team_id: int,
    invitation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return team_invitation_service.cancel_invitation(
        db, invitation_id=invitation_id, requester_id=current_user.id, team_id=team_id
    )
