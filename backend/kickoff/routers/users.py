from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session
from ..dependencies import get_current_user
from ..errors import Forbidden
from ..models import User
from ..schemas.reservation import ReservationSummary
from ..schemas.user import BirthdayEntry, UserPublic
from ..services.slot_service import SlotReservationService
from ..services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserPublic)
async def read_current_user(current_user: User = Depends(get_current_user)) -> User:
    return current_user


@router.get("/me/reservations", response_model=list[ReservationSummary])
async def read_my_reservations(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = SlotReservationService(session)
    return await service.list_reservations(user_id=current_user.id)


@router.get("/upcoming-birthdays", response_model=list[BirthdayEntry])
async def read_upcoming_birthdays(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    service = UserService(session)
    return await service.upcoming_birthdays(date.today())


@router.get("/{user_id}", response_model=UserPublic)
async def read_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    if user_id != current_user.id and not current_user.is_admin:
        raise Forbidden("You can only view your own profile.")
    service = UserService(session)
    return await service.get_user(user_id)
