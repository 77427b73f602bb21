from app.models.user import User
from app.models.team import Team
from app.models.team_membership import TeamMembership, TeamRole
from app.models.team_invitation import TeamInvitation, InvitationStatus
from app.models.team_chat_message import TeamChatMessage
from app.models.chat_read_receipt import ChatReadReceipt
from app.models.team_file import TeamFile
from app.models.team_notification import TeamNotification
from app.models.team_activity import TeamActivity
from app.models.team_task_comment import TeamTaskComment
from app.models.task import Task
from app.models.project import Project
