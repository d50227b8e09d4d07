import logging
from collections import defaultdict
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlmodel import select

from ..database import atomic, lock_for_write, lock_one
from ..enums import RequestStatus, RequestType
from ..errors import Conflict, InvalidRequest, NotFound
from ..models import AvailabilitySlot, FootballField, MatchmakingRequest, User
from ..schemas.matchmaking import CategorizedMatchmaking, MatchmakingEntry, MatchSuggestion

logger = logging.getLogger(__name__)

DIRECT_PLAYERS_NEEDED = 1


class MatchmakingService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def submit_direct(
        self,
        *,
        user_id: str,
        field_id: str,
        request_type: RequestType,
        slot_id: str | None = None,
        slot_date: date | None = None,
    ) -> MatchmakingRequest:
        """Queue a single player for a day on a field."""
        if request_type != RequestType.PLAYERS_LOOKING_FOR_TEAM:
            raise InvalidRequest("Invalid request type for direct matchmaking.")

        async with atomic(self.session):
            field = await self.session.get(FootballField, field_id)
            if field is None:
                raise NotFound("Field not found.")

            effective_date = slot_date
            if slot_id:
                slot = await self.session.get(AvailabilitySlot, slot_id)
                if slot is None:
                    raise NotFound("The selected time slot does not exist.")
                if slot.field_id != field_id:
                    raise InvalidRequest("The selected time slot belongs to another field.")
                effective_date = slot.slot_date
            if effective_date is None:
                raise InvalidRequest("Either slot_id or slot_date is required.")

            request = MatchmakingRequest(
                user_id=user_id,
                field_id=field_id,
                slot_date=effective_date,
                request_type=request_type,
                players_needed=DIRECT_PLAYERS_NEEDED,
            )
            self.session.add(request)

        logger.info("Player %s joined the pool for field %s on %s", user_id, field_id, effective_date)
        return request

    async def reject(self, request_id: str) -> MatchmakingRequest:
        async with atomic(self.session):
            request = None
            if await lock_for_write(self.session, MatchmakingRequest, MatchmakingRequest.id == request_id):
                request = await lock_one(
                    self.session,
                    select(MatchmakingRequest).where(MatchmakingRequest.id == request_id),
                )
            if request is None:
                raise NotFound("Request not found.")
            if request.status != RequestStatus.PENDING:
                raise Conflict(f"Matchmaking request is already {request.status.value}.")
            request.status = RequestStatus.REJECTED
            self.session.add(request)

        logger.info("Matchmaking request %s rejected", request_id)
        return request

    async def find_suggestions(self) -> list[MatchSuggestion]:
        """Pair pending solo players with pending teams on the same field and day.

        Advisory only: an administrator decides which pairing to act on.
        """
        player_req = aliased(MatchmakingRequest)
        team_req = aliased(MatchmakingRequest)
        player_user = aliased(User)
        team_user = aliased(User)

        statement = (
            select(player_req, team_req, player_user, team_user, FootballField)
            .join(
                team_req,
                (team_req.field_id == player_req.field_id) & (team_req.slot_date == player_req.slot_date),
            )
            .join(player_user, player_user.id == player_req.user_id)
            .join(team_user, team_user.id == team_req.user_id)
            .join(FootballField, FootballField.id == player_req.field_id)
            .where(
                player_req.request_type == RequestType.PLAYERS_LOOKING_FOR_TEAM,
                team_req.request_type == RequestType.TEAM_LOOKING_FOR_PLAYERS,
                player_req.status == RequestStatus.PENDING,
                team_req.status == RequestStatus.PENDING,
            )
            .order_by(player_req.slot_date, team_req.created_at, player_req.created_at)
        )
        rows = (await self.session.execute(statement)).all()
        return [
            MatchSuggestion(
                player_request_id=player.id,
                player_id=player.user_id,
                player_name=p_user.name,
                team_request_id=team.id,
                team_user_id=team.user_id,
                team_user_name=t_user.name,
                team_phone_number=t_user.phone_number,
                team_players_needed=team.players_needed,
                field_id=field.id,
                field_name=field.name,
                slot_date=player.slot_date,
            )
            for player, team, p_user, t_user, field in rows
        ]

    async def categorized(self) -> CategorizedMatchmaking:
        statement = (
            select(MatchmakingRequest, User.name, FootballField.name)
            .join(User, User.id == MatchmakingRequest.user_id)
            .join(FootballField, FootballField.id == MatchmakingRequest.field_id)
            .order_by(MatchmakingRequest.slot_date, MatchmakingRequest.created_at)
        )
        grouped: dict[RequestType, list[MatchmakingEntry]] = defaultdict(list)
        for request, user_name, field_name in (await self.session.execute(statement)).all():
            grouped[request.request_type].append(
                MatchmakingEntry(
                    id=request.id,
                    user_id=request.user_id,
                    user_name=user_name,
                    field_id=request.field_id,
                    field_name=field_name,
                    slot_date=request.slot_date,
                    request_type=request.request_type,
                    status=request.status,
                    players_needed=request.players_needed,
                )
            )

        return CategorizedMatchmaking(
            team_looking_for_players=grouped[RequestType.TEAM_LOOKING_FOR_PLAYERS],
            team_vs_team=grouped[RequestType.TEAM_VS_TEAM],
            players_looking_for_team=grouped[RequestType.PLAYERS_LOOKING_FOR_TEAM],
            potential_matches=await self.find_suggestions(),
        )
