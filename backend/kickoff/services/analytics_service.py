from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..enums import RequestStatus
from ..models import FootballField, MatchmakingRequest, Reservation, User
from ..schemas.admin import AnalyticsSummary
from .slot_service import SlotReservationService

RECENT_RESERVATIONS = 5


class AnalyticsService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def summary(self) -> AnalyticsSummary:
        total_users = (await self.session.execute(select(func.count(User.id)))).scalar() or 0
        total_reservations = (await self.session.execute(select(func.count(Reservation.id)))).scalar() or 0
        pending_requests = (
            await self.session.execute(
                select(func.count(MatchmakingRequest.id)).where(
                    MatchmakingRequest.status == RequestStatus.PENDING
                )
            )
        ).scalar() or 0

        # Each reservation earns its field's hourly price once, whatever its length.
        total_earnings = (
            await self.session.execute(
                select(func.coalesce(func.sum(FootballField.price_per_hour), 0))
                .select_from(Reservation)
                .join(FootballField, FootballField.id == Reservation.field_id)
            )
        ).scalar() or 0

        recent = await SlotReservationService(self.session).list_reservations()
        return AnalyticsSummary(
            total_users=total_users,
            total_reservations=total_reservations,
            total_earnings=round(float(total_earnings), 2),
            pending_requests=pending_requests,
            recent_reservations=recent[:RECENT_RESERVATIONS],
        )
