import logging
import secrets
from typing import Optional

from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..database import atomic, lock_first, lock_for_write, lock_one
from ..enums import BookingType, RequestType, ReservationType, SessionStatus, TeamDesignation
from ..errors import (
    AlreadyMember,
    Conflict,
    Forbidden,
    Full,
    InsufficientPlayers,
    InvalidRequest,
    NotFound,
)
from ..models import (
    AvailabilitySlot,
    FootballField,
    MatchmakingRequest,
    Reservation,
    TeamMember,
    TeamSession,
    User,
)
from ..schemas.team_session import (
    SessionDetails,
    SessionFieldSummary,
    SessionInitiate,
    SessionMemberPublic,
    SessionPublic,
)
from .slot_service import SLOT_TAKEN_MESSAGE, claim_slot

logger = logging.getLogger(__name__)

LOOKING_FOR_PLAYERS_CAPACITY = 5
MIN_PLAYERS_PER_SIDE = 6
FULL_MATCH_PLAYERS = 12
MATCHMAKING_MINIMUMS = {
    BookingType.TEAM_VS_TEAM: 6,
    BookingType.TEAM_LOOKING_FOR_PLAYERS: 3,
}


def players_needed_for(booking_type: BookingType, current_players: int) -> int:
    """Players the matchmaking pool still has to find for a session.

    A team_vs_team request counts towards a full 6v6 game; a team looking for
    players fills a squad of five.
    """
    if booking_type == BookingType.TEAM_VS_TEAM:
        needed = FULL_MATCH_PLAYERS - current_players
    elif booking_type == BookingType.TEAM_LOOKING_FOR_PLAYERS:
        needed = LOOKING_FOR_PLAYERS_CAPACITY - current_players
    else:
        raise InvalidRequest(f"{booking_type.value} sessions do not enter matchmaking.")
    return max(0, needed)


class TeamSessionService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _generate_code(self) -> str:
        return secrets.token_hex(8)

    async def initiate(self, *, creator_id: str, payload: SessionInitiate) -> TeamSession:
        timed = payload.booking_type == BookingType.TWO_TEAMS_READY
        if timed and (payload.start_time is None or payload.end_time is None):
            raise InvalidRequest("A start and end time are required for two_teams_ready bookings.")

        async with atomic(self.session):
            field = await self.session.get(FootballField, payload.field_id)
            if field is None:
                raise NotFound("Field not found.")

            if timed:
                # Best effort only: the slot is claimed for real at confirm time.
                slot = await lock_first(
                    self.session,
                    select(AvailabilitySlot)
                    .where(
                        AvailabilitySlot.field_id == payload.field_id,
                        AvailabilitySlot.slot_date == payload.slot_date,
                        AvailabilitySlot.start_time == payload.start_time,
                    )
                    .order_by(AvailabilitySlot.is_reserved, AvailabilitySlot.id),
                    nowait=True,
                )
                if slot is None:
                    raise NotFound("No slot exists at the selected time.")
                if slot.is_reserved:
                    raise Conflict("The selected time slot is already reserved.")

            team_session = TeamSession(
                invitation_code=self._generate_code(),
                creator_id=creator_id,
                booking_type=payload.booking_type,
                field_id=payload.field_id,
                slot_date=payload.slot_date,
                start_time=payload.start_time if timed else None,
                end_time=payload.end_time if timed else None,
            )
            self.session.add(team_session)
            await self.session.flush()

            self.session.add(
                TeamMember(
                    session_id=team_session.id,
                    user_id=creator_id,
                    team_designation=TeamDesignation.A if timed else TeamDesignation.SINGLE,
                )
            )

        logger.info(
            "Team session %s (%s) opened by user %s",
            team_session.invitation_code,
            team_session.booking_type.value,
            creator_id,
        )
        return team_session

    async def join(
        self,
        *,
        invitation_code: str,
        user_id: str,
        team_designation: TeamDesignation,
    ) -> TeamMember:
        async with atomic(self.session):
            team_session = await self._lock_active(invitation_code)
            self._check_designation(team_session, team_designation)

            existing_stmt = select(TeamMember.id).where(
                TeamMember.session_id == team_session.id,
                TeamMember.user_id == user_id,
            )
            if (await self.session.execute(existing_stmt)).scalar_one_or_none():
                raise AlreadyMember("User already in this team session.")

            if team_session.booking_type == BookingType.TEAM_LOOKING_FOR_PLAYERS:
                counts = await self._designation_counts(team_session.id)
                if counts.get(TeamDesignation.SINGLE, 0) >= LOOKING_FOR_PLAYERS_CAPACITY:
                    raise Full(f"Team is full (max {LOOKING_FOR_PLAYERS_CAPACITY} players).")

            member = TeamMember(
                session_id=team_session.id,
                user_id=user_id,
                team_designation=team_designation,
            )
            self.session.add(member)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                raise AlreadyMember("User already in this team session.") from exc

        return member

    async def remove_player(
        self,
        *,
        invitation_code: str,
        acting_user_id: str,
        target_user_id: str,
    ) -> None:
        async with atomic(self.session):
            team_session = await self._lock_active(invitation_code)
            if team_session.creator_id != acting_user_id:
                raise Forbidden("Only the session creator can remove players.")
            if target_user_id == acting_user_id:
                raise InvalidRequest("Cannot remove the team creator.")

            result = await self.session.execute(
                delete(TeamMember).where(
                    TeamMember.session_id == team_session.id,
                    TeamMember.user_id == target_user_id,
                )
            )
            if result.rowcount == 0:
                raise NotFound("Player not found in this session.")

    async def confirm_booking(self, *, invitation_code: str, acting_user_id: str) -> Reservation:
        """Turn a two-teams-ready session into a confirmed reservation."""
        async with atomic(self.session):
            team_session = await self._lock_active(invitation_code)
            if team_session.booking_type != BookingType.TWO_TEAMS_READY:
                raise InvalidRequest("Only two_teams_ready sessions can confirm a booking.")
            if team_session.creator_id != acting_user_id:
                raise Forbidden("Only the session creator can confirm the booking.")

            counts = await self._designation_counts(team_session.id)
            team_a = counts.get(TeamDesignation.A, 0)
            team_b = counts.get(TeamDesignation.B, 0)
            if team_a < MIN_PLAYERS_PER_SIDE or team_b < MIN_PLAYERS_PER_SIDE:
                raise InsufficientPlayers(
                    f"Both teams must have at least {MIN_PLAYERS_PER_SIDE} players "
                    f"(team A has {team_a}, team B has {team_b})."
                )

            slot = await lock_first(
                self.session,
                select(AvailabilitySlot)
                .where(
                    AvailabilitySlot.field_id == team_session.field_id,
                    AvailabilitySlot.slot_date == team_session.slot_date,
                    AvailabilitySlot.start_time == team_session.start_time,
                    AvailabilitySlot.is_reserved.is_(False),
                )
                .order_by(AvailabilitySlot.id),
            )
            if slot is None:
                raise Conflict(SLOT_TAKEN_MESSAGE)
            claimed = await claim_slot(
                self.session,
                slot,
                holder_id=acting_user_id,
                reservation_type=ReservationType.TWO_TEAMS_READY,
            )
            if not claimed:
                raise Conflict(SLOT_TAKEN_MESSAGE)

            reservation = Reservation(
                user_id=acting_user_id,
                field_id=team_session.field_id,
                slot_date=team_session.slot_date,
                start_time=slot.start_time,
                end_time=slot.end_time,
                booking_type=ReservationType.TWO_TEAMS_READY,
                session_id=team_session.id,
            )
            self.session.add(reservation)
            await self._complete(team_session)

        logger.info("Team session %s confirmed as reservation %s", invitation_code, reservation.id)
        return reservation

    async def submit_matchmaking(
        self,
        *,
        invitation_code: str,
        acting_user_id: str,
        current_players: int,
    ) -> MatchmakingRequest:
        """Hand a partial team over to the matchmaking pool as a day-level request."""
        async with atomic(self.session):
            team_session = await self._lock_active(invitation_code)
            required = MATCHMAKING_MINIMUMS.get(team_session.booking_type)
            if required is None:
                raise InvalidRequest(
                    "Only team_vs_team and team_looking_for_players sessions can enter matchmaking."
                )
            if team_session.creator_id != acting_user_id:
                raise Forbidden("Only the session creator can submit to matchmaking.")
            if current_players < required:
                raise InsufficientPlayers(f"Matchmaking failed: Team must have at least {required} players.")

            request = MatchmakingRequest(
                user_id=acting_user_id,
                field_id=team_session.field_id,
                slot_date=team_session.slot_date,
                request_type=RequestType(team_session.booking_type.value),
                players_needed=players_needed_for(team_session.booking_type, current_players),
            )
            self.session.add(request)
            await self._complete(team_session)

        logger.info(
            "Team session %s submitted to matchmaking (request %s, %s players needed)",
            invitation_code,
            request.id,
            request.players_needed,
        )
        return request

    async def cancel(self, *, invitation_code: str, acting_user_id: str) -> TeamSession:
        async with atomic(self.session):
            team_session = await self._lock_active(invitation_code)
            if team_session.creator_id != acting_user_id:
                raise Forbidden("Only the session creator can cancel the session.")
            team_session.status = SessionStatus.CANCELLED
            self.session.add(team_session)
        return team_session

    async def details(self, invitation_code: str) -> SessionDetails:
        statement = (
            select(TeamSession, FootballField)
            .join(FootballField, FootballField.id == TeamSession.field_id)
            .where(
                TeamSession.invitation_code == invitation_code,
                TeamSession.status == SessionStatus.ACTIVE,
            )
        )
        row = (await self.session.execute(statement)).first()
        if row is None:
            raise NotFound("Team session not found or inactive.")
        team_session, field = row

        members_stmt = (
            select(TeamMember, User.name)
            .join(User, User.id == TeamMember.user_id)
            .where(TeamMember.session_id == team_session.id)
            .order_by(TeamMember.joined_at)
        )
        members = [
            SessionMemberPublic(
                id=member.id,
                session_id=member.session_id,
                user_id=member.user_id,
                player_name=name,
                team_designation=member.team_designation,
            )
            for member, name in (await self.session.execute(members_stmt)).all()
        ]
        return SessionDetails(
            session=SessionPublic.model_validate(team_session),
            field=SessionFieldSummary(
                name=field.name,
                location=field.location,
                price_per_hour=field.price_per_hour,
                image=field.image,
            ),
            members=members,
        )

    async def _lock_active(self, invitation_code: str) -> TeamSession:
        """Lock an active session before its roster or status is read.

        Member counts and status checks made afterwards hold until commit, so
        concurrent joins cannot over-fill a session and only one caller can
        move it out of ``active``.
        """
        active = (
            TeamSession.invitation_code == invitation_code,
            TeamSession.status == SessionStatus.ACTIVE,
        )
        if not await lock_for_write(self.session, TeamSession, *active):
            raise NotFound("Team session not found or inactive.")
        team_session: Optional[TeamSession] = await lock_one(self.session, select(TeamSession).where(*active))
        if team_session is None:
            raise NotFound("Team session not found or inactive.")
        return team_session

    async def _designation_counts(self, session_id: str) -> dict[TeamDesignation, int]:
        statement = (
            select(TeamMember.team_designation, func.count(TeamMember.id))
            .where(TeamMember.session_id == session_id)
            .group_by(TeamMember.team_designation)
        )
        rows = (await self.session.execute(statement)).all()
        return {designation: count for designation, count in rows}

    async def _complete(self, team_session: TeamSession) -> None:
        team_session.status = SessionStatus.COMPLETED
        self.session.add(team_session)
        await self.session.flush()

    @staticmethod
    def _check_designation(team_session: TeamSession, designation: TeamDesignation) -> None:
        if team_session.booking_type == BookingType.TWO_TEAMS_READY:
            if designation == TeamDesignation.SINGLE:
                raise InvalidRequest("Choose team A or team B to join this session.")
        elif designation != TeamDesignation.SINGLE:
            raise InvalidRequest("This session only accepts single players.")
