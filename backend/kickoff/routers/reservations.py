from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session
from ..dependencies import get_current_user
from ..models import User
from ..schemas.reservation import ReservationPublic, ReserveRequest, ReserveResponse
from ..services.slot_service import SlotReservationService

router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.post("", response_model=ReserveResponse, status_code=status.HTTP_201_CREATED)
async def reserve_slot(
    payload: ReserveRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = SlotReservationService(session)
    reservation = await service.reserve_direct(user_id=current_user.id, slot_id=payload.slot_id)
    return ReserveResponse(
        message="Reservation successful!",
        reservation=ReservationPublic.model_validate(reservation),
    )
