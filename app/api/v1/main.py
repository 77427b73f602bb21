from fastapi import APIRouter

from app.api.v1.endpoints import teams, invitations, team_chat


api_router = APIRouter()

api_router.include_router(teams.router, prefix="/teams", tags=["teams"])
api_router.include_router(invitations.router, prefix="/invitations", tags=["invitations"])
api_router.include_router(team_chat.router, tags=["team-chat"])
