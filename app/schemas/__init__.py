from app.schemas.user import User, UserCreate
from app.schemas.token import TokenData
from app.schemas.team import Team, TeamCreate, TeamUpdate, TeamDetail, UserTeam, TeamDeletionSummary
from app.schemas.team_membership import TeamMember, TeamMemberAdd, TeamMemberRoleUpdate
from app.schemas.team_invitation import TeamInvitation, TeamInvitationCreate, TeamInvitationInfo
from app.schemas.team_chat import (
    TeamChatMessage,
    TeamChatMessageCreate,
    TeamChatMessageUpdate,
    TeamChatPage,
    MarkReadRequest,
    MarkReadResult,
    UnreadCount,
    TeamChatStats,
)
