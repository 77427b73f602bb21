"""
Team Deletion Service

Deleting a team removes everything that only makes sense inside it and
detaches tasks and projects, which outlive the team. All steps run in one
transaction: if any of them fails, nothing is deleted.
"""
import logging
from typing import Dict

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import InternalError
from app.models.chat_read_receipt import ChatReadReceipt
from app.models.project import Project
from app.models.task import Task
from app.models.team import Team
from app.models.team_activity import TeamActivity
from app.models.team_chat_message import TeamChatMessage
from app.models.team_file import TeamFile
from app.models.team_invitation import TeamInvitation
from app.models.team_membership import TeamMembership
from app.models.team_notification import TeamNotification
from app.models.team_task_comment import TeamTaskComment
from app.schemas.team import TeamDeletionSummary
from app.services import team_permission_service

logger = logging.getLogger(__name__)


def _delete_members(db: Session, team_id: int) -> int:
    return db.query(TeamMembership).filter(
        TeamMembership.team_id == team_id
    ).delete(synchronize_session=False)


def _delete_read_receipts(db: Session, team_id: int) -> int:
    # Receipts reference messages, so they go first.
    team_messages = select(TeamChatMessage.id).where(TeamChatMessage.team_id == team_id)
    return db.query(ChatReadReceipt).filter(
        ChatReadReceipt.message_id.in_(team_messages)
    ).delete(synchronize_session=False)


def _delete_messages(db: Session, team_id: int) -> int:
    return db.query(TeamChatMessage).filter(
        TeamChatMessage.team_id == team_id
    ).delete(synchronize_session=False)


def _delete_team_records(db: Session, team_id: int) -> Dict[str, int]:
    counts = {}
    for key, model in (
        ("files", TeamFile),
        ("notifications", TeamNotification),
        ("activities", TeamActivity),
        ("task_comments", TeamTaskComment),
        ("invitations", TeamInvitation),
    ):
        counts[key] = db.query(model).filter(model.team_id == team_id).delete(synchronize_session=False)
    return counts


def _detach_tasks_and_projects(db: Session, team_id: int) -> Dict[str, int]:
    return {
        "tasks_detached": db.query(Task).filter(
            Task.team_id == team_id
        ).update({"team_id": None}, synchronize_session=False),
        "projects_detached": db.query(Project).filter(
            Project.team_id == team_id
        ).update({"team_id": None}, synchronize_session=False),
    }


def _delete_team_row(db: Session, team_id: int) -> int:
    return db.query(Team).filter(Team.id == team_id).delete(synchronize_session=False)


def delete_team(db: Session, team_id: int, requester_id: int) -> TeamDeletionSummary:
    """
    Delete a team and everything scoped to it.

    Args:
        db: Database session
        team_id: Team to delete
        requester_id: Must be an owner of the team

    Returns:
        Row counts affected by each step

    Raises:
        AuthorizationError: The requester may not delete the team (this
            includes teams that do not exist)
        InternalError: A step failed; the whole deletion was rolled back
    """
    team_permission_service.require_permission(db, team_id, requester_id, team_permission_service.DELETE)

    try:
        counts = {
            "members": _delete_members(db, team_id),
            "read_receipts": _delete_read_receipts(db, team_id),
            "messages": _delete_messages(db, team_id),
        }
        counts.update(_delete_team_records(db, team_id))
        counts.update(_detach_tasks_and_projects(db, team_id))
        _delete_team_row(db, team_id)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[TeamDeletion] Rolled back deletion of team {team_id} requested by user {requester_id}: {e}")
        raise InternalError("Failed to delete team") from e

    summary = TeamDeletionSummary(team_id=team_id, **counts)
    logger.info(f"[TeamDeletion] User {requester_id} deleted team {team_id}: {summary.model_dump(exclude={'team_id'})}")
    return summary
