from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session
from ..dependencies import get_current_user
from ..models import User
from ..schemas.common import MessageResponse
from ..schemas.tournament import (
    RegistrationResponse,
    TeamConfirmRequest,
    TeamCreateRequest,
    TeamCreateResponse,
    TeamDetails,
    TeamJoinRequest,
    TeamRemovePlayerRequest,
    TournamentTeamPublic,
)
from ..services.tournament_team_service import TournamentTeamService

router = APIRouter(prefix="/team-signup", tags=["team-signup"])


@router.post("/create", response_model=TeamCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    payload: TeamCreateRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    team, created = await TournamentTeamService(session).create(
        tournament_id=payload.tournament_id,
        team_name=payload.team_name,
        captain_id=current_user.id,
        captain_name=payload.creator_name or current_user.name,
    )
    body = TeamCreateResponse(
        team=TournamentTeamPublic.model_validate(team),
        invitation_code=team.invitation_code,
        created=created,
    )
    if not created:
        return JSONResponse(status_code=status.HTTP_200_OK, content=body.model_dump(mode="json"))
    return body


@router.get("/{invitation_code}", response_model=TeamDetails)
async def get_team_details(invitation_code: str, session: AsyncSession = Depends(get_session)):
    return await TournamentTeamService(session).details(invitation_code)


@router.post("/join", response_model=MessageResponse)
async def join_team(
    payload: TeamJoinRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await TournamentTeamService(session).join(
        invitation_code=payload.invitation_code,
        user_id=current_user.id,
        user_name=payload.user_name or current_user.name,
    )
    return MessageResponse(message="Successfully joined the team.")


@router.post("/remove-player", response_model=MessageResponse)
async def remove_team_player(
    payload: TeamRemovePlayerRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await TournamentTeamService(session).remove_player(
        invitation_code=payload.invitation_code,
        acting_user_id=current_user.id,
        target_user_id=payload.target_user_id,
    )
    return MessageResponse(message="Player removed successfully.")


@router.post("/confirm", response_model=RegistrationResponse)
async def confirm_registration(
    payload: TeamConfirmRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    team = await TournamentTeamService(session).confirm_registration(
        invitation_code=payload.invitation_code,
        tournament_id=payload.tournament_id,
        captain_id=current_user.id,
    )
    return RegistrationResponse(
        message="Team registered successfully.",
        team_id=team.id,
        team_name=team.team_name,
    )
