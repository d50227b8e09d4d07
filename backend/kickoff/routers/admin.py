from datetime import date
from typing import Sequence

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session
from ..dependencies import get_admin_user
from ..schemas.admin import AnalyticsSummary
from ..schemas.common import MessageResponse
from ..schemas.field import (
    AdminSlotPublic,
    FieldCreate,
    FieldPublic,
    SlotBatchCreate,
    SlotBatchResponse,
    SlotPublic,
    SlotUpdate,
)
from ..schemas.matchmaking import ApprovalResponse, CategorizedMatchmaking, MatchSuggestion
from ..schemas.reservation import ReservationSummary
from ..schemas.tournament import TournamentCreate, TournamentPublic, TournamentTeamsResponse
from ..services.analytics_service import AnalyticsService
from ..services.catalog_service import CatalogService
from ..services.matchmaking_service import MatchmakingService
from ..services.slot_service import SlotReservationService
from ..services.tournament_team_service import TournamentTeamService

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(get_admin_user)],
)


@router.get("/fields", response_model=list[FieldPublic])
async def list_fields(session: AsyncSession = Depends(get_session)) -> Sequence[FieldPublic]:
    fields = await CatalogService(session).list_fields()
    return [FieldPublic.model_validate(field) for field in fields]


@router.post("/fields", response_model=FieldPublic, status_code=status.HTTP_201_CREATED)
async def create_field(payload: FieldCreate, session: AsyncSession = Depends(get_session)):
    field = await CatalogService(session).create_field(payload)
    return FieldPublic.model_validate(field)


@router.put("/fields/{field_id}", response_model=FieldPublic)
async def update_field(field_id: str, payload: FieldCreate, session: AsyncSession = Depends(get_session)):
    field = await CatalogService(session).update_field(field_id, payload)
    return FieldPublic.model_validate(field)


@router.delete("/fields/{field_id}", response_model=MessageResponse)
async def delete_field(field_id: str, session: AsyncSession = Depends(get_session)):
    await CatalogService(session).delete_field(field_id)
    return MessageResponse(message="Field deleted successfully.")


@router.get("/availability", response_model=list[AdminSlotPublic])
async def list_slots(
    field_id: str | None = None,
    slot_date: date | None = Query(default=None, alias="date"),
    session: AsyncSession = Depends(get_session),
):
    return await SlotReservationService(session).list_slots(field_id=field_id, slot_date=slot_date)


@router.post("/availability", response_model=SlotBatchResponse, status_code=status.HTTP_201_CREATED)
async def add_slots(payload: SlotBatchCreate, session: AsyncSession = Depends(get_session)):
    slots = await SlotReservationService(session).add_slots(
        field_id=payload.field_id,
        slot_date=payload.slot_date,
        windows=payload.slots,
    )
    return SlotBatchResponse(
        message="Availability slots added successfully.",
        slots=[SlotPublic.model_validate(slot) for slot in slots],
    )


@router.put("/availability/{slot_id}", response_model=SlotPublic)
async def update_slot(slot_id: str, payload: SlotUpdate, session: AsyncSession = Depends(get_session)):
    slot = await SlotReservationService(session).update_slot(slot_id, payload)
    return SlotPublic.model_validate(slot)


@router.delete("/availability/{slot_id}", response_model=MessageResponse)
async def delete_slot(slot_id: str, session: AsyncSession = Depends(get_session)):
    await SlotReservationService(session).delete_slot(slot_id)
    return MessageResponse(message="Availability slot deleted successfully.")


@router.get("/reservations", response_model=list[ReservationSummary])
async def list_reservations(session: AsyncSession = Depends(get_session)):
    return await SlotReservationService(session).list_reservations()


@router.put("/reservations/{reservation_id}/reject", response_model=MessageResponse)
async def reject_reservation(reservation_id: str, session: AsyncSession = Depends(get_session)):
    await SlotReservationService(session).release(reservation_id)
    return MessageResponse(message="Reservation rejected and slot is now available.")


@router.put("/reservations/{reservation_id}/cancel", response_model=MessageResponse)
async def cancel_reservation(reservation_id: str, session: AsyncSession = Depends(get_session)):
    await SlotReservationService(session).release(reservation_id)
    return MessageResponse(message="Reservation cancelled and slot is now available.")


@router.get("/matchmaking/suggestions", response_model=list[MatchSuggestion])
async def list_suggestions(session: AsyncSession = Depends(get_session)):
    return await MatchmakingService(session).find_suggestions()


@router.get("/matchmaking/categorized", response_model=CategorizedMatchmaking)
async def categorized_requests(session: AsyncSession = Depends(get_session)):
    return await MatchmakingService(session).categorized()


@router.post("/matchmaking-requests/{request_id}/approve", response_model=ApprovalResponse)
async def approve_request(request_id: str, session: AsyncSession = Depends(get_session)):
    request, slot = await SlotReservationService(session).approve_matchmaking(request_id)
    return ApprovalResponse(
        message="Matchmaking request approved and slot reserved.",
        request_id=request.id,
        slot_id=slot.id,
    )


@router.post("/matchmaking-requests/{request_id}/reject", response_model=MessageResponse)
async def reject_request(request_id: str, session: AsyncSession = Depends(get_session)):
    await MatchmakingService(session).reject(request_id)
    return MessageResponse(message="Matchmaking request rejected.")


@router.get("/tournaments", response_model=list[TournamentPublic])
async def list_tournaments(session: AsyncSession = Depends(get_session)):
    return await CatalogService(session).list_tournaments()


@router.post("/tournaments", response_model=TournamentPublic, status_code=status.HTTP_201_CREATED)
async def create_tournament(payload: TournamentCreate, session: AsyncSession = Depends(get_session)):
    return await CatalogService(session).create_tournament(payload)


@router.delete("/tournaments/{tournament_id}", response_model=MessageResponse)
async def delete_tournament(tournament_id: str, session: AsyncSession = Depends(get_session)):
    await CatalogService(session).delete_tournament(tournament_id)
    return MessageResponse(message="Tournament deleted successfully.")


@router.get("/tournaments/{tournament_id}/teams", response_model=TournamentTeamsResponse)
async def list_tournament_teams(tournament_id: str, session: AsyncSession = Depends(get_session)):
    return await TournamentTeamService(session).list_teams(tournament_id)


@router.get("/analytics", response_model=AnalyticsSummary)
async def analytics(session: AsyncSession = Depends(get_session)):
    return await AnalyticsService(session).summary()
