from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session
from ..dependencies import get_current_user
from ..models import User
from ..schemas.common import MessageResponse
from ..schemas.team_session import (
    ConfirmBookingResponse,
    InitiateResponse,
    RemovePlayerRequest,
    SessionCodeRequest,
    SessionDetails,
    SessionInitiate,
    SessionJoin,
    SubmitMatchmakingRequest,
    SubmitMatchmakingResponse,
)
from ..services.team_session_service import TeamSessionService

router = APIRouter(prefix="/team-building", tags=["team-building"])


@router.post("/initiate", response_model=InitiateResponse, status_code=status.HTTP_201_CREATED)
async def initiate_session(
    payload: SessionInitiate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    team_session = await TeamSessionService(session).initiate(creator_id=current_user.id, payload=payload)
    return InitiateResponse(invitation_code=team_session.invitation_code, session_id=team_session.id)


@router.get("/{invitation_code}", response_model=SessionDetails)
async def get_session_details(invitation_code: str, session: AsyncSession = Depends(get_session)):
    return await TeamSessionService(session).details(invitation_code)


@router.post("/join", response_model=MessageResponse)
async def join_session(
    payload: SessionJoin,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await TeamSessionService(session).join(
        invitation_code=payload.invitation_code,
        user_id=current_user.id,
        team_designation=payload.team_designation,
    )
    return MessageResponse(message="Joined the team session.")


@router.post("/remove-player", response_model=MessageResponse)
async def remove_player(
    payload: RemovePlayerRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await TeamSessionService(session).remove_player(
        invitation_code=payload.invitation_code,
        acting_user_id=current_user.id,
        target_user_id=payload.target_user_id,
    )
    return MessageResponse(message="Player removed successfully.")


@router.post("/confirm-booking", response_model=ConfirmBookingResponse)
async def confirm_booking(
    payload: SessionCodeRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    reservation = await TeamSessionService(session).confirm_booking(
        invitation_code=payload.invitation_code,
        acting_user_id=current_user.id,
    )
    return ConfirmBookingResponse(message="Booking confirmed successfully.", reservation_id=reservation.id)


@router.post("/submit-matchmaking", response_model=SubmitMatchmakingResponse)
async def submit_matchmaking(
    payload: SubmitMatchmakingRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    request = await TeamSessionService(session).submit_matchmaking(
        invitation_code=payload.invitation_code,
        acting_user_id=current_user.id,
        current_players=payload.current_players,
    )
    return SubmitMatchmakingResponse(
        message="Matchmaking request submitted successfully.",
        request_id=request.id,
        players_needed=request.players_needed,
    )


@router.post("/cancel", response_model=MessageResponse)
async def cancel_session(
    payload: SessionCodeRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await TeamSessionService(session).cancel(
        invitation_code=payload.invitation_code,
        acting_user_id=current_user.id,
    )
    return MessageResponse(message="Team session cancelled.")
