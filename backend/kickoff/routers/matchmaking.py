from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session
from ..dependencies import get_current_user
from ..models import User
from ..schemas.matchmaking import DirectMatchmakingCreate, SubmitDirectResponse
from ..services.matchmaking_service import MatchmakingService

router = APIRouter(prefix="/matchmaking", tags=["matchmaking"])


@router.post("", response_model=SubmitDirectResponse, status_code=status.HTTP_201_CREATED)
async def submit_direct_request(
    payload: DirectMatchmakingCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = MatchmakingService(session)
    request = await service.submit_direct(
        user_id=current_user.id,
        field_id=payload.field_id,
        request_type=payload.request_type,
        slot_id=payload.slot_id,
        slot_date=payload.slot_date,
    )
    return SubmitDirectResponse(message="Matchmaking request submitted.", request_id=request.id)
